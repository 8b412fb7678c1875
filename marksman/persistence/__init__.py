from .history import SessionHistory, SessionSink
from .writer import FailedWrite, SessionWriter

__all__ = ["FailedWrite", "SessionHistory", "SessionSink", "SessionWriter"]
