"""
Exception taxonomy for the tracking pipeline.

Per-frame detection problems are not represented here: they are caught
inside the pipeline loop, logged and skipped.
"""


class BodyTrackError(Exception):
    """Base class for all body tracking errors."""


class DetectorInitError(BodyTrackError):
    """A detector backend could not be initialized."""

    def __init__(self, backend: str, reason: str = ""):
        self.backend = backend
        self.reason = reason
        message = f"{backend} failed to initialize"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PipelineStateError(BodyTrackError):
    """An operation was requested in a pipeline state that does not allow it."""


class RecordingError(BodyTrackError):
    """Recording could not be started (missing action label, no active stream)."""


class SessionFormatError(BodyTrackError):
    """A binary session payload does not match the documented layout."""


class SessionExportError(BodyTrackError):
    """Serializing or writing a session failed."""
