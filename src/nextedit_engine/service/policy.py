"""Per-mode request behaviour: debounce and cancellation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

HOSTED_DEBOUNCE_MS = 300
LOCAL_DEBOUNCE_MS = 800
MIN_DEBOUNCE_MS = 100


@dataclass(frozen=True, slots=True)
class RequestPolicy:
    """``cancel_on_new_request`` aborts the in-flight request when a newer one
    starts; ``respect_cancellation`` lets an abort short-circuit the await."""

    cancel_on_new_request: bool
    respect_cancellation: bool
    debounce_ms: int


def resolve_debounce_ms(mode: str, configured: Optional[float] = None) -> int:
    if configured is not None and not math.isnan(configured):
        base = configured
    else:
        base = LOCAL_DEBOUNCE_MS if mode == "local" else HOSTED_DEBOUNCE_MS
    return max(MIN_DEBOUNCE_MS, math.floor(base))


def request_policy(mode: str, configured_debounce: Optional[float] = None) -> RequestPolicy:
    # Local requests always run to completion; superseded results may be adapted.
    if mode == "local":
        return RequestPolicy(
            cancel_on_new_request=False,
            respect_cancellation=False,
            debounce_ms=resolve_debounce_ms(mode, configured_debounce),
        )
    return RequestPolicy(
        cancel_on_new_request=True,
        respect_cancellation=True,
        debounce_ms=resolve_debounce_ms(mode, configured_debounce),
    )


__all__ = [
    "HOSTED_DEBOUNCE_MS",
    "LOCAL_DEBOUNCE_MS",
    "MIN_DEBOUNCE_MS",
    "RequestPolicy",
    "request_policy",
    "resolve_debounce_ms",
]
