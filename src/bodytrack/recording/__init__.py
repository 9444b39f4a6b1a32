"""Session recording and the binary session format."""
from .session_codec import encode_session, decode_session, DecodedFrame
from .session_recorder import SessionRecorder, RecorderConfig, RecordingTimer
from .exporter import SessionExporter

__all__ = [
    "encode_session",
    "decode_session",
    "DecodedFrame",
    "SessionRecorder",
    "RecorderConfig",
    "RecordingTimer",
    "SessionExporter",
]
