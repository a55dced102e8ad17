# Domain Session Package
from .models import StudySession
from .ports import LocalCache, SessionRepository

__all__ = ["StudySession", "LocalCache", "SessionRepository"]
