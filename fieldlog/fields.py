"""
Field registry - maps each record field name to the function computing it.

Every resolver takes the logger and a Record. Resolvers for seqid, the time
fields and process fill the Record's lazy cache on first use and return the
cached value afterwards.

Loggers compile their field list once, at construction, with resolve_fields();
the log path then only walks a tuple of resolvers.
"""

import os
import sys
from datetime import datetime

from beartype.typing import Callable, Dict, Iterable, Tuple, Union

from fieldlog.errors import UnknownFieldError
from fieldlog.levels import level_name
from fieldlog.record import Record

FieldValue = Union[str, int]
Resolver = Callable[..., FieldValue]

NANOSECONDS = 1_000_000_000


def format_time(ns: int, time_format: str) -> str:
    """
    Render a nanosecond timestamp in local time.

    Args:
        ns: Nanoseconds since the epoch
        time_format: strftime format; %f renders the microseconds of ns

    Returns:
        Formatted time string
    """
    seconds, remainder = divmod(ns, NANOSECONDS)
    moment = datetime.fromtimestamp(seconds).replace(microsecond=remainder // 1000)
    return moment.strftime(time_format)


def program_name() -> str:
    """Base name of the running program."""
    return os.path.basename(sys.argv[0] if sys.argv and sys.argv[0] else sys.executable)


def _name(logger, record: Record) -> str:
    return logger.name


def _seqid(logger, record: Record) -> int:
    # One id per record, however many fields read it
    if record.seqid is None:
        record.seqid = logger.next_seqid()
    return record.seqid


def _levelno(logger, record: Record) -> int:
    return int(record.level)


def _levelname(logger, record: Record) -> str:
    return level_name(record.level)


def _created(logger, record: Record) -> int:
    return logger.start_time_ns


def _nsecs(logger, record: Record) -> int:
    return logger.start_time_ns % NANOSECONDS


def _time(logger, record: Record) -> str:
    return format_time(record.capture_time(), logger.time_format)


def _timestamp(logger, record: Record) -> int:
    return record.capture_time()


def _rtime(logger, record: Record) -> int:
    return record.capture_time() - logger.start_time_ns


def _filename(logger, record: Record) -> str:
    return record.filename


def _pathname(logger, record: Record) -> str:
    return record.pathname


def _module(logger, record: Record) -> str:
    return program_name()


def _lineno(logger, record: Record) -> int:
    return record.lineno


def _funcname(logger, record: Record) -> str:
    return record.funcname


def _process(logger, record: Record) -> int:
    return record.capture_process()


def _message(logger, record: Record) -> str:
    return record.message


FIELDS: Dict[str, Resolver] = {
    "name": _name,
    "seqid": _seqid,
    "levelno": _levelno,
    "levelname": _levelname,
    "created": _created,
    "nsecs": _nsecs,
    "time": _time,
    "timestamp": _timestamp,
    "rtime": _rtime,
    "filename": _filename,
    "pathname": _pathname,
    "module": _module,
    "lineno": _lineno,
    "funcname": _funcname,
    "process": _process,
    "message": _message,
}

# Value type each resolver returns, checked against the pattern's conversions
FIELD_TYPES: Dict[str, type] = {
    "name": str,
    "seqid": int,
    "levelno": int,
    "levelname": str,
    "created": int,
    "nsecs": int,
    "time": str,
    "timestamp": int,
    "rtime": int,
    "filename": str,
    "pathname": str,
    "module": str,
    "lineno": int,
    "funcname": str,
    "process": int,
    "message": str,
}

FIELD_DESCRIPTIONS: Dict[str, str] = {
    "name": "name of the logger",
    "seqid": "sequence number of the record",
    "levelno": "level number",
    "levelname": "level name",
    "created": "starting time of the logger (ns since epoch)",
    "nsecs": "nanosecond part of the logger starting time",
    "time": "record time, rendered with the time format",
    "timestamp": "record time (ns since epoch)",
    "rtime": "nanoseconds since the logger started",
    "filename": "source filename of the caller",
    "pathname": "absolute path of the caller's source file",
    "module": "name of the running program",
    "lineno": "line number of the caller",
    "funcname": "function name of the caller",
    "process": "process id",
    "message": "rendered log message",
}


def resolve_fields(names: Iterable[str]) -> Tuple[Resolver, ...]:
    """
    Compile field names into an ordered tuple of resolvers.

    Args:
        names: Field names in output order

    Returns:
        Resolvers in the same order

    Raises:
        UnknownFieldError: If a name has no resolver
    """
    resolvers = []
    for name in names:
        resolver = FIELDS.get(name)
        if resolver is None:
            raise UnknownFieldError(name)
        resolvers.append(resolver)
    return tuple(resolvers)
