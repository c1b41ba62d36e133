"""
Error taxonomy for the localization workflows.
"""


class LocalizationError(Exception):
    """Base class for pipeline errors."""


class ConfigError(LocalizationError):
    """Backend configuration is invalid (raised at startup)."""


class ProviderUnavailable(LocalizationError):
    """Every backend configured for a capability failed."""

    def __init__(self, capability: str, last_backend: str | None, detail: str = "") -> None:
        self.capability = capability
        self.last_backend = last_backend
        self.detail = detail
        msg = f"No {capability} backend succeeded (last tried: {last_backend or 'none'})"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class SourceMissing(LocalizationError):
    """A required input (video, transcript, captions) is absent."""


class TranscodeFailure(LocalizationError):
    """ffmpeg/ffprobe rejected an operation."""

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        self.detail = detail
        msg = f"Transcoder failed during {operation}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class PartialDegradation(LocalizationError):
    """A non-essential step failed and a fallback value was substituted.

    Never propagated out of a workflow; caught, logged and listed on the result.
    """

    def __init__(self, step: str, detail: str = "") -> None:
        self.step = step
        self.detail = detail
        super().__init__(f"{step} degraded: {detail}" if detail else f"{step} degraded")
