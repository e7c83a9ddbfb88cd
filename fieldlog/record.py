"""
Log records - the lazy half of a log call.

A Record copies what its Request captured and adds the rendered message.
Sequence id, capture time and process id are only computed when a field
resolver asks for them, and are cached so every resolver reading the same
Record sees the same value.
"""

import os
import time

from beartype.typing import Optional

from fieldlog.request import Request


class Record:
    """One log event, resolved field by field and then discarded"""

    __slots__ = (
        "level",
        "pathname",
        "filename",
        "lineno",
        "funcname",
        "message",
        "seqid",
        "time_ns",
        "process",
    )

    def __init__(
        self,
        level: int,
        message: str,
        pathname: str = "",
        filename: str = "",
        lineno: int = 0,
        funcname: str = "",
    ):
        self.level = level
        self.message = message
        self.pathname = pathname
        self.filename = filename
        self.lineno = lineno
        self.funcname = funcname
        # Lazy caches, None until first read
        self.seqid: Optional[int] = None
        self.time_ns: Optional[int] = None
        self.process: Optional[int] = None

    def capture_time(self) -> int:
        """Wall-clock time of the record in nanoseconds, fixed on first call."""
        if self.time_ns is None:
            self.time_ns = time.time_ns()
        return self.time_ns

    def capture_process(self) -> int:
        """Process id of the record, fixed on first call."""
        if self.process is None:
            self.process = os.getpid()
        return self.process

    def __repr__(self):
        return f"Record(level={self.level}, seqid={self.seqid}, message={self.message!r})"


def new_record(request: Request, message: str) -> Record:
    """Copy level and stack fields from a Request; nothing lazy is computed here."""
    return Record(
        level=request.level,
        message=message,
        pathname=request.pathname,
        filename=request.filename,
        lineno=request.lineno,
        funcname=request.funcname,
    )
