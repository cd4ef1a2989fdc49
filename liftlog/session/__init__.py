from .state import Canonical, SessionState, Temporary, WorkoutRecord
from .store import SessionStore

__all__ = ["Canonical", "SessionState", "SessionStore", "Temporary", "WorkoutRecord"]
