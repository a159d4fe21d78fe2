"""Root exception classes shared across the package.

Every exception raised on purpose by ``pipeline_graph`` derives from
``AppError`` so that embedding applications can catch the whole family
with a single ``except`` clause.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Application base exception.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code.
        details: Additional error context as dictionary.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


__all__ = [
    "AppError",
]
