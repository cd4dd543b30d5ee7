from .browse_log import BrowseCount, BrowseQuery, BrowseReport, parse_browse_request
from .command import Command, CommandResult, Ops, decode_frame

__all__ = [
    "BrowseCount",
    "BrowseQuery",
    "BrowseReport",
    "Command",
    "CommandResult",
    "Ops",
    "decode_frame",
    "parse_browse_request",
]
