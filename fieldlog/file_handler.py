"""
File Handler - reopenable file sink for fieldlog

Writes log lines to a file and can close and reopen that file on request,
so an external rotator (logrotate, newsyslog, ...) can rename the current
file and tell the process to continue in a fresh one.

Features:
- Reopen at the same path, swapping the handle under the write lock
- Thread-safe write operations
- Automatic directory creation
- Lazy open on first write

Usage:
    from fieldlog.file_handler import ReopenableFileHandler

    handler = ReopenableFileHandler("/var/log/app/app.log")

    handler.write("Log message\\n")
    handler.reopen()  # after the rotator renamed app.log
    handler.close()
"""

from pathlib import Path
from threading import Lock

from beartype.typing import Optional, TextIO


class ReopenableFileHandler:
    """
    File handler whose handle can be swapped while other threads write.

    write(), flush(), close() and reopen() all take the same lock, so a reopen
    never interleaves with a write and no line is split across two files.

    Example:
        handler = ReopenableFileHandler("/var/log/app/app.log")
        handler.write("2024-01-20 10:15:30.123456 [INFO] started\\n")
        handler.close()
    """

    def __init__(self, filepath: str, encoding: str = "utf-8"):
        """
        Initialize file handler.

        Args:
            filepath: Path to log file
            encoding: File encoding (default: utf-8)
        """
        self.filepath = Path(filepath)
        self.encoding = encoding
        self._file: Optional[TextIO] = None
        self._lock = Lock()
        self._ensure_directory()

    def _ensure_directory(self):
        """Create log directory if it doesn't exist"""
        self.filepath.parent.mkdir(parents=True, exist_ok=True)

    def _open(self):
        self._file = open(self.filepath, "a", encoding=self.encoding)

    def _close_file(self):
        if self._file is not None and not self._file.closed:
            self._file.flush()
            self._file.close()
        self._file = None

    @property
    def closed(self) -> bool:
        return self._file is None or self._file.closed

    def write(self, content: str):
        """
        Write content to the current file.

        Args:
            content: Content to write (should include newline if needed)
        """
        with self._lock:
            if self._file is None or self._file.closed:
                self._open()
            self._file.write(content)
            self._file.flush()

    def reopen(self):
        """
        Close the current handle and open the same path again.

        Raises:
            OSError: If the file cannot be opened; the handler is then left
                closed and the next write retries the open
        """
        with self._lock:
            self._close_file()
            self._ensure_directory()
            self._open()

    def flush(self):
        """Flush file buffer"""
        with self._lock:
            if self._file and not self._file.closed:
                self._file.flush()

    def close(self):
        """
        Close file handle.

        Should be called when done writing to ensure data is flushed.
        """
        with self._lock:
            self._close_file()

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()
