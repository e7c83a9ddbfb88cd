"""
Call-site capture for log requests.

Inspects the active call stack and returns where a logging call was made.
The capture has to happen on the calling thread, inside the call, because the
frame chain it walks no longer leads to the call site once control returns to
the caller or the request moves to another thread.
"""

import inspect
import os

from beartype.typing import NamedTuple

# Failed captures use these values. Line number 0 is reserved for
# "never requested", so the failure value is negative.
ERR_STRING = "???"
ERR_LINENO = -1

_current_frame = inspect.currentframe


class CallSite(NamedTuple):
    """Source location of a logging call"""

    pathname: str
    filename: str
    lineno: int
    funcname: str


FAILED_CALL_SITE = CallSite(ERR_STRING, ERR_STRING, ERR_LINENO, ERR_STRING)


def short_funcname(qualname: str) -> str:
    """Strip everything up to the last '.' of a qualified function name."""
    return qualname.rsplit(".", 1)[-1]


def capture_call_site(depth: int) -> CallSite:
    """
    Capture the source location of a frame above the caller.

    Args:
        depth: Number of frames to skip above the caller of this function.
            0 returns the caller's own location.

    Returns:
        CallSite for the selected frame, or FAILED_CALL_SITE when frame
        introspection is unavailable or the stack is not deep enough
    """
    frame = _current_frame()
    if frame is None:
        return FAILED_CALL_SITE

    try:
        frame = frame.f_back
        for _ in range(depth):
            if frame is None:
                break
            frame = frame.f_back
        if frame is None:
            return FAILED_CALL_SITE

        code = frame.f_code
        pathname = os.path.abspath(code.co_filename)
        qualname = getattr(code, "co_qualname", code.co_name)
        return CallSite(
            pathname=pathname,
            filename=os.path.basename(pathname),
            lineno=frame.f_lineno,
            funcname=short_funcname(qualname),
        )
    finally:
        # Break the reference cycle between this frame and the walked frames
        del frame
