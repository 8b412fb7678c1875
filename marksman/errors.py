"""Exception types raised by the range simulator."""

from __future__ import annotations


class MarksmanError(Exception):
    """Base class for all range simulator errors."""


class UnknownShotIdError(MarksmanError, KeyError):
    """A hit/miss report referenced a shot that is not pending."""

    def __init__(self, shot_id: int) -> None:
        super().__init__(shot_id)
        self.shot_id = shot_id

    def __str__(self) -> str:
        return f"shot {self.shot_id} is not pending"


class LoadoutLockedError(MarksmanError):
    """Weapon selection was attempted mid-session (between first shot and reload)."""


class PersistenceError(MarksmanError):
    """Writing a finalized session to storage failed."""

    def __init__(self, session_name: str, cause: BaseException | None = None) -> None:
        super().__init__(f"failed to persist {session_name}: {cause}")
        self.session_name = session_name
        self.cause = cause
