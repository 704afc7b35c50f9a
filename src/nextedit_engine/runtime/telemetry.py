"""Logging and suggestion lifecycle records for the engine, on top of telelog.

Records only go to the configured telelog sinks; nothing leaves the process.
"""

from __future__ import annotations

import os
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, MutableMapping, Optional, Tuple, cast

import telelog  # type: ignore[import]

tl = cast(Any, telelog)

ENV_PREFIX = "NEXTEDIT_ENGINE_"
ROOT_LOGGER = "nextedit_engine"
SUGGESTION_LOGGER = "nextedit_engine.suggestions"
SUGGESTION_EVENTS = ("shown", "accepted", "disposed")

_loggers: MutableMapping[str, Any] = {}
_config: Optional[Any] = None


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    return repr(value) if isinstance(value, (dict, list, tuple, set)) else str(value)


def build_config(*, quiet: bool = False) -> Any:
    """Engine telelog config.

    ``quiet`` keeps warnings only and never writes to the console; hosts that
    own the terminal use it. Otherwise ``NEXTEDIT_ENGINE_LOG_LEVEL`` sets the
    threshold. ``NEXTEDIT_ENGINE_LOG_FILE`` adds a file sink in both cases and
    replaces the console when not quiet.
    """

    config = tl.Config()
    config.with_profiling(True)
    log_file = os.getenv(f"{ENV_PREFIX}LOG_FILE", "")
    if log_file:
        config.with_file_output(log_file)

    if quiet:
        config.with_min_level("WARNING")
        config.with_console_output(False)
    else:
        config.with_min_level(os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper())
        config.with_console_output(not log_file)
    return config


def configure(*, config: Optional[Any] = None, quiet: bool = False) -> None:
    """Swap the active config and drop cached loggers.

    ``config`` is an explicit ``telelog.Config``; it cannot be combined with
    ``quiet``.
    """

    global _config
    if config is not None and quiet:
        raise ValueError("Provide either `config` or `quiet`, not both.")
    if config is None:
        config = build_config(quiet=quiet)
    else:
        config.with_profiling(True)
    _config = config
    _loggers.clear()


def get_logger(name: Optional[str] = None) -> Any:
    global _config
    if _config is None:
        _config = build_config()
    logger_name = name or ROOT_LOGGER
    if logger_name not in _loggers:
        _loggers[logger_name] = tl.Logger.with_config(logger_name, _config)
    return _loggers[logger_name]


def _level_method(logger: Any, level: str, *, with_data: bool) -> Tuple[Any, bool]:
    name = level.lower()
    if with_data:
        structured = getattr(logger, f"{name}_with", None)
        if structured is not None:
            return structured, True
    method = getattr(logger, name, None)
    if method is None:
        raise ValueError(f"Unsupported log level '{level}'.")
    return method, False


def log(
    logger: Any, level: str, message: str, data: Optional[Dict[str, Any]] = None
) -> None:
    """Write ``message`` with key/value pairs through ``logger`` at ``level``."""

    method, structured = _level_method(logger, level, with_data=bool(data))
    if structured:
        method(message, [(str(key), _stringify(value)) for key, value in data.items()])
    elif data:
        method(f"{message} {data}")
    else:
        method(message)


def record_event(
    name: str,
    *,
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
    logger_name: Optional[str] = None,
) -> None:
    log(get_logger(logger_name), level, f"event::{name}", {"event": name, **(data or {})})


def suggestion_event(
    kind: str,
    *,
    suggestion_id: str,
    suggestion_type: str,
    additions: int = 0,
    deletions: int = 0,
    uri: Optional[str] = None,
) -> None:
    """Record a ``shown``, ``accepted`` or ``disposed`` transition of one suggestion."""

    if kind not in SUGGESTION_EVENTS:
        raise ValueError(f"Unknown suggestion event '{kind}'.")
    data: Dict[str, Any] = {
        "suggestion_id": suggestion_id,
        "suggestion_type": suggestion_type,
        "additions": additions,
        "deletions": deletions,
    }
    if uri is not None:
        data["uri"] = uri
    record_event(f"suggestion.{kind}", data=data, logger_name=SUGGESTION_LOGGER)


@dataclass
class SpanHandle:
    """Yielded by :func:`span`; metadata added here is logged if the block fails."""

    logger: Any
    span_name: str
    component_name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = _stringify(value)

    def fail(self, reason: str) -> None:
        payload: Dict[str, Any] = {"span": self.span_name, **self.metadata, "reason": reason}
        if self.component_name:
            payload["component"] = self.component_name
        log(self.logger, "error", "span::fail", payload)


@contextmanager
def span(
    name: str,
    *,
    logger_name: Optional[str] = None,
    component: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Iterator[SpanHandle]:
    """Profile a block, tracked under ``component`` when one is given.

    ``metadata`` is attached as logger context while the block runs.
    """

    logger = get_logger(logger_name)
    context = {key: _stringify(value) for key, value in (metadata or {}).items()}
    for key, value in context.items():
        logger.add_context(key, value)

    with ExitStack() as stack:
        if component:
            stack.enter_context(logger.track_component(component))
        stack.enter_context(logger.profile(name))
        handle = SpanHandle(
            logger=logger, span_name=name, component_name=component, metadata=dict(context)
        )
        try:
            yield handle
        except Exception as exc:
            handle.fail(str(exc))
            raise
        finally:
            for key in context:
                logger.remove_context(key)


__all__ = [
    "SUGGESTION_EVENTS",
    "SpanHandle",
    "build_config",
    "configure",
    "get_logger",
    "log",
    "record_event",
    "span",
    "suggestion_event",
]
