"""Forward SIGQUIT from the go command to the binary running on the device."""
from __future__ import annotations

import logging
import queue
import signal
import threading
from typing import Optional

from go_android_exec.errors import RelayError
from go_android_exec.relay import AdbRelay

logger = logging.getLogger(__name__)


class SignalForwarder:
    """
    Relays a local signal to the device by process name while active.

    The PID of the remote process is unknown, so delivery is a broadcast with
    killall: any other process on the device with the same name gets the
    signal too. Nothing interrupts the remote run itself; the intent is to
    make the binary dump its goroutines instead of this wrapper.
    """

    def __init__(self, relay: AdbRelay, binary_name: str, signum: Optional[int] = None):
        self.relay = relay
        self.binary_name = binary_name
        self.signum = signum if signum is not None else getattr(signal, "SIGQUIT", None)
        self._queue: "queue.Queue[Optional[int]]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._previous = None
        self._installed = False

    def __enter__(self) -> "SignalForwarder":
        if self.signum is None:
            logger.debug("SIGQUIT is not available; not forwarding signals")
            return self
        try:
            self._previous = signal.signal(self.signum, self._handle)
        except (ValueError, OSError, RuntimeError) as e:
            # signal.signal only works from the main thread.
            logger.debug(f"Not forwarding signals: {e}")
            return self
        self._installed = True
        self._thread = threading.Thread(target=self._drain, name="signal-forwarder", daemon=True)
        self._thread.start()
        return self

    def __exit__(self, *exc_info) -> None:
        if not self._installed:
            return
        signal.signal(self.signum, self._previous if self._previous is not None else signal.SIG_DFL)
        self._installed = False
        self._queue.put(None)
        self._thread.join()
        self._thread = None

    def _handle(self, signum, frame) -> None:
        # Runs in the main thread between bytecodes; adb work happens in _drain.
        self._queue.put(signum)

    def _drain(self) -> None:
        while True:
            signum = self._queue.get()
            if signum is None:
                return
            self.forward(signum)

    def forward(self, signum: int) -> None:
        """Send signum to every device process named like the binary."""
        name = signal.Signals(signum).name.removeprefix("SIG")
        logger.debug(f"Forwarding SIG{name} to {self.binary_name}")
        try:
            self.relay.exec_out(f"killall -{name} {self.binary_name}")
        except RelayError as e:
            logger.warning(f"Failed to forward SIG{name} to {self.binary_name}: {e}")
