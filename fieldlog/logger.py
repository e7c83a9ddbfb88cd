"""
Field Logger - pattern-based logging built from named record fields

A logger is configured with an output pattern and an ordered list of field
names. Each call produces one line: the fields are resolved for the call's
record and substituted, in order, into the pattern.

Format strings combine both parts, separated by the last newline:

    "%s [%s] %s:%d: %s\\ntime,levelname,filename,lineno,message"

Features:
- Sixteen record fields (see fieldlog.fields), chosen per logger
- Stack-derived fields captured on the calling thread, the rest computed lazily
- Process-wide sequence ids, shared by every field reading the same record
- Synchronous or asynchronous (single writer thread) output
- Reopen of the output file for external log rotation

Usage:
    from fieldlog.logger import file_logger, LogLevel

    logger = file_logger("app", LogLevel.INFO, "%d %s %s\\nseqid,levelname,message",
                         filename="/var/log/app/app.log")
    logger.info("Processed %d items", 100)
    logger.reopen_on_signal(signal.SIGHUP)
"""

import queue
import re
import sys
import threading
import time

from beartype.typing import Any, Dict, List, Optional, TextIO, Tuple, Union

from fieldlog.constants import FAULT_MAPPING
from fieldlog.errors import ConfigurationError, ReopenError
from fieldlog.fields import FIELD_TYPES, FieldValue, resolve_fields
from fieldlog.file_handler import ReopenableFileHandler
from fieldlog.levels import LogLevel, parse_level
from fieldlog.record import Record, new_record
from fieldlog.request import Request, new_request
from fieldlog.signals import SignalReopener

DEFAULT_FORMAT = "%s [%s] %s: %s\ntime,levelname,name,message"
DEFAULT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

STANDARD_FORMAT = (
    "%s [%s] %s[%d] %s:%d:%s: %s\n" "time,levelname,name,process,filename,lineno,funcname,message"
)

# printf conversions, "%%" matched separately so it is not counted
_PLACEHOLDER = re.compile(r"%%|%[-#0 +]*(?:\d+)?(?:\.\d+)?[diouxXeEfFgGcrsa]")

# Conversions that only accept numbers
_NUMERIC_CONVERSIONS = frozenset("diouxXeEfFgGc")

_STOP = object()


class SequenceCounter:
    """Monotonic counter; the only operation is increment-and-read"""

    def __init__(self):
        self._value = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value


def parse_format(fmt: str) -> Tuple[str, List[str]]:
    """
    Split a combined format into output pattern and field names.

    Args:
        fmt: "<pattern>\\n<field>,<field>,..."

    Returns:
        Tuple of (pattern, field names)

    Raises:
        ConfigurationError: If the field list is missing, the number of
            placeholders in the pattern differs from the number of fields, or
            a numeric conversion is paired with a text field
    """
    pattern, sep, field_list = fmt.rpartition("\n")
    if not sep:
        raise ConfigurationError(f"Format {fmt!r} has no field list; expected '<pattern>\\n<fields>'")
    fields = [name.strip() for name in field_list.split(",") if name.strip()]
    placeholders = [match for match in _PLACEHOLDER.findall(pattern) if match != "%%"]
    if len(placeholders) != len(fields):
        raise ConfigurationError(
            f"Pattern {pattern!r} has {len(placeholders)} placeholders but {len(fields)} fields are configured"
        )
    for placeholder, name in zip(placeholders, fields):
        if placeholder[-1] in _NUMERIC_CONVERSIONS and FIELD_TYPES.get(name) is str:
            raise ConfigurationError(f"Placeholder {placeholder!r} needs a number but field '{name}' is text")
    return pattern, fields


class Logger:
    """
    Logger producing one pattern-rendered line per call.

    Configuration (name, fields, pattern, time format, start time) is fixed at
    construction and read without locking from every calling thread.

    Example:
        logger = Logger("app", LogLevel.INFO, "%d [%s] %s\\nseqid,levelname,message")
        logger.info("Request completed in %.2fs", 1.5)

        # Output:
        # 1 [INFO] Request completed in 1.50s
    """

    # Logger frames between the caller and new_request: the public method and _log
    CALLDEPTH = 2

    def __init__(
        self,
        name: str,
        level: Union[LogLevel, int, str] = LogLevel.INFO,
        fmt: str = DEFAULT_FORMAT,
        time_format: str = DEFAULT_TIME_FORMAT,
        stream: Optional[TextIO] = None,
        sync: bool = True,
        stacklevel: int = 1,
    ):
        """
        Initialize logger.

        Args:
            name: Logger name, available as the "name" field
            level: Minimum level to output
            fmt: Combined pattern and field list
            time_format: strftime format for the "time" field
            stream: Output (anything with write(); default: sys.stderr)
            sync: Write on the calling thread (True) or on a writer thread
            stacklevel: 1 reports the caller of the log method; raise it by one
                for every wrapper function placed around this logger

        Raises:
            ConfigurationError: On invalid level, format or stacklevel
        """
        if stacklevel < 1:
            raise ConfigurationError(f"stacklevel must be at least 1, got {stacklevel}")

        self.name = name
        self.level = parse_level(level)
        self.pattern, fields = parse_format(fmt)
        self.fields: Tuple[str, ...] = tuple(fields)
        self._resolvers = resolve_fields(self.fields)
        self.time_format = time_format
        self.start_time_ns = time.time_ns()
        self.output_stream = stream if stream is not None else sys.stderr
        self.sync = sync
        self.calldepth = self.CALLDEPTH + stacklevel - 1

        self._seq = SequenceCounter()
        self._lock = threading.Lock()
        # Guards _closed and the enqueue, so nothing is queued behind the stop marker
        self._state_lock = threading.Lock()
        self._closed = False
        self._queue: Optional[queue.Queue] = None
        self._writer_thread: Optional[threading.Thread] = None
        if not sync:
            self._queue = queue.Queue()
            self._writer_thread = threading.Thread(
                target=self._drain, name=f"fieldlog-writer-{name}", daemon=True
            )
            self._writer_thread.start()

    def next_seqid(self) -> int:
        """Issue the next sequence id of this logger."""
        return self._seq.next()

    def resolve(self, record: Record) -> List[FieldValue]:
        """Resolve every configured field for a record, in configured order."""
        return [resolver(self, record) for resolver in self._resolvers]

    def render(self, record: Record) -> str:
        """Substitute the resolved fields into the pattern."""
        return (self.pattern % tuple(self.resolve(record))) + "\n"

    def _emit(self, request: Request):
        record = new_record(request, request.message())
        line = self.render(record)
        with self._lock:
            stream = self.output_stream
            try:
                stream.write(line)
                stream.flush()
            except Exception as e:
                # Fallback to stderr if output stream fails
                if stream is not sys.stderr:
                    sys.stderr.write("Logging error: " + FAULT_MAPPING["write_failed"].format(error=e) + "\n")
                    sys.stderr.write(line)

    def _drain(self):
        while True:
            request = self._queue.get()
            try:
                if request is _STOP:
                    return
                self._emit(request)
            except Exception as e:
                sys.stderr.write(f"Logging error: dropped {request!r}: {e}\n")
            finally:
                self._queue.task_done()

    def _log(self, level: int, fmt: str, args: Tuple[Any, ...]):
        if level < self.level:
            return
        # Built here, on the calling thread: the call site is only on this stack
        request = new_request(self, level, fmt, args)
        if not self.sync:
            with self._state_lock:
                if not self._closed:
                    self._queue.put(request)
                    return
        self._emit(request)

    def log(self, level: int, fmt: str, *args):
        """
        Log a message at an explicit level.

        Args:
            level: Level number
            fmt: printf-style format
            *args: Format arguments

        Example:
            logger.log(LogLevel.WARNING, "Disk %s at %d%%", "/var", 91)
        """
        self._log(level, fmt, args)

    def debug(self, fmt: str, *args):
        """Log debug message."""
        self._log(LogLevel.DEBUG, fmt, args)

    def info(self, fmt: str, *args):
        """Log info message."""
        self._log(LogLevel.INFO, fmt, args)

    def warning(self, fmt: str, *args):
        """Log warning message."""
        self._log(LogLevel.WARNING, fmt, args)

    def error(self, fmt: str, *args):
        """Log error message."""
        self._log(LogLevel.ERROR, fmt, args)

    def critical(self, fmt: str, *args):
        """Log critical message."""
        self._log(LogLevel.CRITICAL, fmt, args)

    def set_level(self, level: Union[LogLevel, int, str]):
        """
        Set minimum log level.

        Args:
            level: New log level

        Example:
            logger.set_level(LogLevel.DEBUG)
        """
        self.level = parse_level(level)

    def set_output(self, stream: TextIO):
        """Replace the output stream; in-flight writes finish on the old one."""
        with self._lock:
            self.output_stream = stream

    def reopen(self):
        """
        Close and reopen the output file.

        Safe to call from any thread while others log: the file handler swaps
        its handle under its own write lock.

        Raises:
            ReopenError: If the output cannot be reopened
        """
        reopen = getattr(self.output_stream, "reopen", None)
        if reopen is None:
            raise ReopenError(f"Output of logger '{self.name}' does not support reopen")
        try:
            reopen()
        except Exception as e:
            raise ReopenError(f"Failed to reopen output of logger '{self.name}': {e}") from e

    def reopen_on_signal(self, signum: int) -> SignalReopener:
        """
        Reopen the output every time the process receives a signal.

        Must be called from the main thread.

        Args:
            signum: Signal to listen for, e.g. signal.SIGHUP

        Returns:
            Started SignalReopener; call stop() on it to cancel
        """
        reopener = SignalReopener(self, signum)
        reopener.start()
        return reopener

    def flush(self):
        """Wait for queued records (async mode) and flush the output."""
        if self._queue is not None and not self._closed:
            self._queue.join()
        with self._lock:
            flush = getattr(self.output_stream, "flush", None)
            if flush is not None:
                flush()

    def close(self):
        """
        Stop the writer thread and close the output.

        Standard streams are flushed but left open.
        """
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            if self._writer_thread is not None:
                self._queue.put(_STOP)
        if self._writer_thread is not None:
            self._writer_thread.join()
        with self._lock:
            stream = self.output_stream
            if stream in (sys.stdout, sys.stderr):
                stream.flush()
            elif hasattr(stream, "close"):
                stream.close()

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()


def file_logger(
    name: str,
    level: Union[LogLevel, int, str],
    fmt: str,
    time_format: str,
    filename: str,
    sync: bool = True,
) -> Logger:
    """
    Build a logger writing to a reopenable file.

    Args:
        name: Logger name
        level: Minimum level to output
        fmt: Combined pattern and field list
        time_format: strftime format for the "time" field
        filename: Path of the log file; parent directories are created
        sync: Write on the calling thread (True) or on a writer thread

    Returns:
        Logger whose reopen() reopens filename
    """
    return Logger(name, level, fmt, time_format, stream=ReopenableFileHandler(filename), sync=sync)


def standard_file_logger(name: str, filename: str) -> Logger:
    """
    File logger with the standard daemon layout.

    Example output:
        2024-01-20 10:15:30.123456 [INFO] worker[4242] jobs.py:87:run: job 17 done
    """
    return file_logger(name, LogLevel.DEBUG, STANDARD_FORMAT, DEFAULT_TIME_FORMAT, filename, sync=False)


class LoggerFactory:
    """
    Factory for creating loggers with consistent configuration.

    Provides centralized configuration for all loggers in the application.
    """

    _default_level = LogLevel.INFO
    _default_format = DEFAULT_FORMAT
    _default_time_format = DEFAULT_TIME_FORMAT
    _default_stream: TextIO = sys.stderr
    _default_sync = True
    _loggers: Dict[str, Logger] = {}

    @classmethod
    def configure(
        cls,
        level: Union[LogLevel, int, str] = "INFO",
        fmt: str = DEFAULT_FORMAT,
        time_format: str = DEFAULT_TIME_FORMAT,
        stream: Optional[TextIO] = None,
        sync: bool = True,
    ):
        """
        Configure default logger settings.

        Level and stream are applied to loggers already handed out. Their
        format, time format and sync mode are fixed; the new values apply to
        loggers created afterwards. A log file replaced by a new stream is
        closed.

        Args:
            level: Log level name or number
            fmt: Combined pattern and field list
            time_format: strftime format for the "time" field
            stream: Output stream (default: sys.stderr)
            sync: Write on the calling thread (True) or on a writer thread

        Raises:
            ConfigurationError: On invalid level or format

        Example:
            LoggerFactory.configure(level="DEBUG", fmt="%s %s\\nlevelname,message")
        """
        new_level = parse_level(level)
        # Validate the format before changing anything
        resolve_fields(parse_format(fmt)[1])

        cls._default_level = new_level
        cls._default_format = fmt
        cls._default_time_format = time_format
        cls._default_sync = sync
        previous_stream = cls._default_stream
        if stream is not None:
            cls._default_stream = stream

        # Update existing loggers
        for logger in cls._loggers.values():
            logger.set_level(cls._default_level)
            logger.set_output(cls._default_stream)

        # Replaced log files are not written to again
        if previous_stream is not cls._default_stream and isinstance(previous_stream, ReopenableFileHandler):
            previous_stream.close()

    @classmethod
    def get_logger(cls, name: str) -> Logger:
        """
        Get a logger instance with default configuration.

        Returns cached logger if already created for this name.

        Args:
            name: Logger name (usually module path)

        Returns:
            Logger instance
        """
        if name not in cls._loggers:
            cls._loggers[name] = Logger(
                name,
                cls._default_level,
                cls._default_format,
                cls._default_time_format,
                cls._default_stream,
                sync=cls._default_sync,
            )
        return cls._loggers[name]

    @classmethod
    def reset(cls):
        """
        Reset factory to defaults and clear all cached loggers.

        Useful for testing.
        """
        for logger in cls._loggers.values():
            if not logger.sync:
                logger.flush()
        cls._default_level = LogLevel.INFO
        cls._default_format = DEFAULT_FORMAT
        cls._default_time_format = DEFAULT_TIME_FORMAT
        cls._default_stream = sys.stderr
        cls._default_sync = True
        cls._loggers = {}
