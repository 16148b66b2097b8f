"""risqlab – fixed-delay pacing between provider calls."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable


@dataclass
class CallPacer:
    """Insert a fixed delay between successive external calls.

    The first call goes out immediately; every later call waits
    ``delay_seconds`` first. ``sleep`` is injectable for tests.
    """

    delay_seconds: float
    sleep: Callable[[float], None] = time.sleep
    calls: int = field(default=0, init=False)

    def wait(self) -> None:
        if self.calls > 0 and self.delay_seconds > 0:
            self.sleep(self.delay_seconds)
        self.calls += 1


__all__ = ["CallPacer"]
