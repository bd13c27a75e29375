"""HTTP helper utilities shared across Flask blueprints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from flask import jsonify


@dataclass(frozen=True)
class ProblemResponse:
    """Lightweight representation of an RFC 7807-style error payload."""

    error: str
    status: int
    message: str | None = None
    extra: Mapping[str, Any] | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error, "status": self.status}
        if self.message:
            payload["message"] = self.message
        if self.extra:
            payload.update(self.extra)
        return payload

    def to_response(self) -> tuple[Any, int]:
        """Convert the problem payload into a Flask response tuple."""

        return jsonify(self.as_dict()), self.status


def problem_response(
    error: str,
    *,
    status: int,
    message: str | None = None,
    **extra: Any,
) -> ProblemResponse:
    """Build a :class:`ProblemResponse`; keyword extras are merged into the body."""

    additional: Mapping[str, Any] | None = extra or None
    return ProblemResponse(error=error, status=status, message=message, extra=additional)


def upstream_problem(message: str, *, status_code: int | None = None) -> ProblemResponse:
    """Map a collaborator failure onto ``unauthorized`` or ``upstream_error``."""

    if status_code in {401, 403}:
        return problem_response("unauthorized", status=401, message=message)

    extra: dict[str, Any] = {}
    if status_code is not None:
        extra["upstream_status"] = status_code
    return problem_response("upstream_error", status=502, message=message, **extra)


__all__ = ["ProblemResponse", "problem_response", "upstream_problem"]
