from .browse_log import BrowseLog
from .event import Event
from .user import User

__all__ = [
    "BrowseLog",
    "Event",
    "User",
]
