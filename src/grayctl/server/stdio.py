"""StdioServer — serve the control protocol on stdin/stdout.

Requests arrive one per line on the input stream. Responses and observer
pushes share the output stream; every write is a whole line taken under one
lock so concurrent pushes from broadcaster threads never interleave.
"""

from __future__ import annotations

import json
import threading
from typing import TYPE_CHECKING, Any, TextIO

import structlog

from grayctl.infrastructure.observers import StreamChannel
from grayctl.server.protocol import handle_line

if TYPE_CHECKING:
    from grayctl.services.coordinator import Coordinator
    from grayctl.services.sweeper import ExpirySweeper

log = structlog.get_logger(__name__)


class StdioServer:
    """Line-oriented request loop with a background expiry sweeper.

    Parameters:
        coordinator: Handles every request.
        sweeper: Started for the lifetime of :meth:`serve`; optional.
        stdin: Request stream.
        stdout: Response and push stream.
    """

    def __init__(
        self,
        coordinator: Coordinator,
        *,
        stdin: TextIO,
        stdout: TextIO,
        sweeper: ExpirySweeper | None = None,
    ) -> None:
        self._coordinator = coordinator
        self._sweeper = sweeper
        self._stdin = stdin
        self._stdout = stdout
        self._write_lock = threading.Lock()
        self.handled = 0

    def channel_for(self, observer_id: str) -> StreamChannel:
        """Push channel addressing *observer_id* on the shared output stream."""
        return StreamChannel(self._stdout, observer_id, self._write_lock)

    def serve(self) -> int:
        """Process requests until EOF. Returns the number of requests handled."""
        if self._sweeper is not None:
            self._sweeper.start()
        log.info("server_started")
        try:
            for line in self._stdin:
                if not line.strip():
                    continue
                self._write(handle_line(self._coordinator, line, self.channel_for))
                self.handled += 1
        finally:
            if self._sweeper is not None:
                self._sweeper.stop()
            log.info("server_stopped", handled=self.handled)
        return self.handled

    def _write(self, payload: dict[str, Any]) -> None:
        with self._write_lock:
            self._stdout.write(json.dumps(payload) + "\n")
            self._stdout.flush()
