from .events import EventBus, EventType, RangeEvent
from .records import MagazineState, SessionRecord, ShotOutcome, ShotRecord

__all__ = ["EventBus", "EventType", "MagazineState", "RangeEvent", "SessionRecord", "ShotOutcome", "ShotRecord"]
