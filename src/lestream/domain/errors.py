"""Error taxonomy shared by the settlement engine layers."""

from __future__ import annotations


class SettlementEngineError(Exception):
    """Base error carrying a stable machine-readable code."""

    default_code = "engine_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.message = message

    def as_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class InvalidInput(SettlementEngineError, ValueError):
    """Non-positive durations or amounts, empty identifiers and similar request errors."""

    default_code = "invalid_input"


class NotFound(SettlementEngineError, LookupError):
    """Unknown song, listener or listening record."""

    default_code = "not_found"


class ResolutionError(SettlementEngineError):
    """A recipient identifier could not be turned into a canonical address."""

    default_code = "resolution_failed"


class RailError(SettlementEngineError):
    """An external transfer, bridge or reward-token call failed."""

    default_code = "rail_error"


class BadgeSagaError(RailError):
    """A badge mint/upgrade step failed after its retry budget was spent."""

    default_code = "badge_step_failed"

    def __init__(self, message: str, *, failed_step: str, completed_steps: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.failed_step = failed_step
        self.completed_steps = completed_steps

    def as_dict(self) -> dict[str, str]:
        payload = super().as_dict()
        payload["failed_step"] = self.failed_step
        payload["completed_steps"] = ",".join(self.completed_steps)
        return payload


class InsufficientActivity(SettlementEngineError):
    """Listening time is below the first badge tier."""

    default_code = "insufficient_activity"
