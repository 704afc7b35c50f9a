"""Editor-agnostic next-edit suggestion engine."""

__all__ = [
    "adapters",
    "config",
    "diff",
    "document",
    "retrieval",
    "runtime",
    "service",
    "suggestions",
]

__version__ = "0.1.0"
