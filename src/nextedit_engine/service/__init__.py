"""Completion service boundary: protocol, request assembly, policy, local model."""

from .protocol import (
    CancellationSignal,
    Candidate,
    CompletionService,
    CompletionServiceError,
    RequestAborted,
)
from .policy import (
    HOSTED_DEBOUNCE_MS,
    LOCAL_DEBOUNCE_MS,
    MIN_DEBOUNCE_MS,
    RequestPolicy,
    request_policy,
    resolve_debounce_ms,
)
from .request import CompletionRequest, build_completion_request, format_recent_changes
from .local import (
    LOCAL_CONTEXT_LINE_RADIUS,
    LocalCompletionService,
    build_local_prompt,
    strip_stop_tokens,
)

__all__ = [
    "CancellationSignal",
    "Candidate",
    "CompletionRequest",
    "CompletionService",
    "CompletionServiceError",
    "HOSTED_DEBOUNCE_MS",
    "LOCAL_CONTEXT_LINE_RADIUS",
    "LOCAL_DEBOUNCE_MS",
    "LocalCompletionService",
    "MIN_DEBOUNCE_MS",
    "RequestAborted",
    "RequestPolicy",
    "build_completion_request",
    "build_local_prompt",
    "format_recent_changes",
    "request_policy",
    "resolve_debounce_ms",
    "strip_stop_tokens",
]
