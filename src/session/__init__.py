"""Client session lifecycle: restore, background verification, login and logout."""

from .manager import SessionManager, SessionListener
from .models import Session, SessionState

__all__ = [
    "SessionManager",
    "SessionListener",
    "Session",
    "SessionState",
]
