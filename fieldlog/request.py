"""
Log requests - the eager half of a log call.

A Request is built synchronously on the calling thread. Any field that can
only be read from the calling stack frame is captured here; everything else is
left for the Record to compute later, possibly on a writer thread.
"""

from beartype.typing import Any, Dict, Tuple

from fieldlog.callsite import capture_call_site

# Classification of every known field: True when its value comes from the
# calling stack frame.
STACK_FIELDS: Dict[str, bool] = {
    "name": False,
    "seqid": False,
    "levelno": False,
    "levelname": False,
    "created": False,
    "nsecs": False,
    "time": False,
    "timestamp": False,
    "rtime": False,
    "filename": True,
    "pathname": True,
    "module": False,
    "lineno": True,
    "funcname": True,
    "process": False,
    "message": False,
}

# new_request's own frame, added to the logger's calldepth when capturing
REQUEST_FRAMES = 1


class Request:
    """A single logging call, with any stack-derived fields already captured"""

    __slots__ = ("level", "format", "args", "pathname", "filename", "lineno", "funcname")

    def __init__(self, level: int, format: str, args: Tuple[Any, ...] = ()):
        self.level = level
        self.format = format
        self.args = args
        # Stack fields stay empty unless the logger's fields ask for them
        self.pathname = ""
        self.filename = ""
        self.lineno = 0
        self.funcname = ""

    def has_call_site(self) -> bool:
        return bool(self.pathname and self.filename and self.funcname and self.lineno != 0)

    def fill_call_site(self, depth: int):
        """
        Capture all four stack fields in one stack walk.

        Does nothing when the fields were already captured, so a request is
        never re-walked from a different frame.

        Args:
            depth: Frames to skip above the caller of this method
        """
        if self.has_call_site():
            return
        site = capture_call_site(depth + 1)
        self.pathname = site.pathname
        self.filename = site.filename
        self.lineno = site.lineno
        self.funcname = site.funcname

    def message(self) -> str:
        """Render the printf-style format with the call's arguments."""
        if not self.args:
            return str(self.format)
        return str(self.format) % self.args

    def __repr__(self):
        return f"Request(level={self.level}, format={self.format!r}, lineno={self.lineno})"


def new_request(logger, level: int, fmt: str, args: Tuple[Any, ...] = ()) -> Request:
    """
    Build a Request for a logging call and capture its stack-derived fields.

    Must be called directly from the logger's call path on the calling thread;
    logger.calldepth counts the logger's own frames above this call.

    Args:
        logger: Logger whose configured fields decide what to capture
        level: Level of the call
        fmt: printf-style format string
        args: Format arguments

    Returns:
        Request ready to be turned into a Record
    """
    request = Request(level, fmt, args)
    for name in logger.fields:
        if STACK_FIELDS.get(name):
            request.fill_call_site(REQUEST_FRAMES + logger.calldepth)
            break
    return request
