"""
Reopen-on-signal loop for cooperating with external log rotation.

A log rotator renames the current log file and then signals the process.
SignalReopener reacts to each delivery of that signal by calling the logger's
reopen(), so writing continues in a fresh file at the original path instead of
the renamed one.

Python runs signal handlers on the main thread only. The handler therefore
does nothing but write one byte into a private socket pair; a daemon thread
blocks on the other end and performs the reopen.

A failed reopen, or the socket closing while the loop was not asked to stop,
terminates the loop. The failure is logged at CRITICAL and set on the
reopener's future, where the owner can observe it:

    reopener = SignalReopener(logger, signal.SIGHUP)
    reopener.start()
    reopener.future.add_done_callback(on_rotation_failure)
    ...
    reopener.stop()
"""

import logging
import signal
import socket
import threading
from concurrent.futures import Future

from beartype.typing import Any, Optional

from fieldlog.errors import ReopenFailedError, SignalChannelClosedError

log = logging.getLogger(__name__)


def signal_name(signum: int) -> str:
    try:
        return signal.Signals(signum).name
    except ValueError:
        return f"signal {signum}"


class SignalReopener:
    """
    Calls logger.reopen() once per delivery of a signal.

    States: Listening after start(), Terminated after stop() or a fatal
    failure. Terminated reopeners cannot be restarted.

    Attributes:
        logger: Object with a reopen() method
        signum: Signal listened for
        deliveries: Number of signals handled so far
        future: Completes with None after stop(), or with the
            ReopenLoopError that terminated the loop
    """

    def __init__(self, logger: Any, signum: int):
        self.logger = logger
        self.signum = signum
        self.deliveries = 0
        self.future: Future = Future()
        self._receiver: Optional[socket.socket] = None
        self._sender: Optional[socket.socket] = None
        self._previous_handler = None
        self._thread: Optional[threading.Thread] = None
        self._stopping = threading.Event()

    @property
    def listening(self) -> bool:
        return self._thread is not None and not self.future.done()

    def _on_signal(self, signum, frame):
        # Terminated loops no longer read the channel
        if self.future.done():
            return
        try:
            self._sender.send(b"\x01")
        except BlockingIOError:
            # Channel full: the listener still has deliveries pending
            pass

    def start(self):
        """
        Install the signal handler and start the listening thread.

        Raises:
            RuntimeError: If already started
            ValueError: If not called from the main thread (raised by
                signal.signal)
        """
        if self._thread is not None:
            raise RuntimeError(f"Reopener for {signal_name(self.signum)} was already started")

        self._receiver, self._sender = socket.socketpair()
        # The handler runs on the main thread and must never block it
        self._sender.setblocking(False)
        try:
            self._previous_handler = signal.signal(self.signum, self._on_signal)
        except (ValueError, OSError):
            self._sender.close()
            self._receiver.close()
            raise

        self._thread = threading.Thread(
            target=self._run, name=f"fieldlog-reopen-{signal_name(self.signum)}", daemon=True
        )
        self._thread.start()
        log.debug("Listening for %s to reopen log output", signal_name(self.signum))

    def _run(self):
        try:
            self._listen()
        except Exception as e:
            log.critical("Reopen loop for %s terminated: %s", signal_name(self.signum), e)
            self.future.set_exception(e)
        else:
            self.future.set_result(None)
        finally:
            self._receiver.close()

    def _listen(self):
        while True:
            try:
                data = self._receiver.recv(1)
            except OSError:
                data = b""
            if not data:
                if self._stopping.is_set():
                    return
                raise SignalChannelClosedError(self.signum, "Signal channel closed unexpectedly")

            self.deliveries += 1
            try:
                self.logger.reopen()
            except Exception as e:
                raise ReopenFailedError(
                    self.signum, f"Reopen on {signal_name(self.signum)} failed: {e}"
                ) from e

    def stop(self, timeout: Optional[float] = None):
        """
        Stop listening and restore the previous signal handler.

        Must be called from the main thread. Calling stop() on a loop that
        already terminated only restores the handler.

        Args:
            timeout: Seconds to wait for the listening thread to finish
        """
        if self._thread is None or self._stopping.is_set():
            return
        self._stopping.set()
        previous = self._previous_handler
        signal.signal(self.signum, previous if previous is not None else signal.SIG_DFL)
        # Closing our end wakes the listener with an empty read
        self._sender.close()
        self._thread.join(timeout)

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None):
        """
        Wait for the loop to terminate.

        Returns:
            None if the loop was stopped

        Raises:
            ReopenLoopError: If the loop terminated on a failure
            concurrent.futures.TimeoutError: If still listening after timeout
        """
        return self.future.result(timeout)
