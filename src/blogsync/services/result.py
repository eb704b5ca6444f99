"""ServiceResult and ServiceError — what every service operation returns.

INVARIANT: Service methods return ServiceResult; domain exceptions are
converted at the service boundary and never reach the CLI.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from blogsync.domain.errors import BlogSyncError


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: BlogSyncError) -> ServiceError:
        return cls(code=exc.code, message=exc.message, detail=exc.detail)


class ServiceResult(BaseModel):
    """Outcome of one service operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: Operation name (e.g. ``"create_article"``).
        data: Operation-specific payload.
        warnings: Non-fatal issues such as a failed metadata write-back.
        error: Set when ``ok`` is False.
        meta: Optional extras (cache hits, timing).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls, op: str, exc: BlogSyncError, warnings: list[str] | None = None
    ) -> ServiceResult:
        return cls(
            ok=False,
            op=op,
            error=ServiceError.from_exception(exc),
            warnings=list(warnings or []),
        )
