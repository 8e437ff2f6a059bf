"""Custom exceptions for regdrop."""


class RegDropError(Exception):
    """Base exception for all regdrop errors."""


class InvalidArgumentError(RegDropError, ValueError):
    """A parameter is outside its accepted domain (k, alpha, beta)."""


class NotEnoughInstancesError(RegDropError):
    """Raised when no reduction is possible for lack of instances."""

    def __init__(self, remaining: int, stage: str = "input"):
        self.remaining = remaining
        self.stage = stage
        super().__init__(
            f"Not enough instances after {stage}: {remaining} remaining, at least 2 are required"
        )


class EngineError(RegDropError):
    """The editing engine was driven incorrectly or its graph is inconsistent."""
