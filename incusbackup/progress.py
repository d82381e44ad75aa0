"""A reader wrapper that reports transfer progress."""

from __future__ import annotations

import threading
from time import monotonic
from typing import BinaryIO, TextIO

_PRINT_INTERVAL = 0.2


class ProgressReader:
    """Wrap a binary stream and periodically write progress lines to ``out``.

    When ``total`` is 0 the percentage is omitted.
    """

    def __init__(self, stream: BinaryIO, total: int, label: str, out: TextIO | None) -> None:
        self._stream = stream
        self._out = out
        self.label = label
        self.total = total
        self.bytes_read = 0
        self._lock = threading.Lock()
        self._last_printed: float | None = None

    def read(self, size: int = -1) -> bytes:
        data = self._stream.read(size)
        with self._lock:
            if data:
                self.bytes_read += len(data)
                now = monotonic()
                if self._last_printed is None or now - self._last_printed >= _PRINT_INTERVAL:
                    self._print()
                    self._last_printed = now
            elif size != 0:
                self._print()
                if self._out is not None:
                    self._out.write("\n")
        return data

    def _print(self) -> None:
        if self._out is None:
            return
        if self.total > 0:
            pct = self.bytes_read / self.total * 100
            self._out.write(
                f"\r[{self.label}] {pct:.1f}% ({self.bytes_read}/{self.total} bytes)"
            )
        else:
            self._out.write(f"\r[{self.label}] {self.bytes_read} bytes")