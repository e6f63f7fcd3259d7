import logging
from typing import Callable, Optional

log = logging.getLogger(__name__)

ProgressSink = Callable[[int, str], None]


class ProgressReporter:
    """Forwards (percentage, message) updates to an optional external sink."""

    def __init__(self, sink: Optional[ProgressSink] = None):
        self.sink = sink

    def report(self, percentage: int, message: str) -> None:
        log.debug("%3d%% %s", percentage, message)
        if self.sink is not None:
            self.sink(int(percentage), message)
