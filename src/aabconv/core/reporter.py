"""Notification sinks for conversion progress, tool output and errors."""

import logging
import queue
from collections.abc import Callable
from typing import Any, NamedTuple, Protocol

from aabconv.models.conversion import ProgressEvent

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]
LineCallback = Callable[[str], None]


class Reporter(Protocol):
    """What a pipeline calls into while it runs.

    Calls are fire-and-forget and may arrive from a worker thread (and, for
    tool output, from the stream reader threads). Implementations must not
    assume they run on the caller's thread.
    """

    def on_progress(self, event: ProgressEvent) -> None: ...

    def on_output(self, line: str) -> None: ...

    def on_error(self, line: str) -> None: ...


class NullReporter:
    """Reporter that drops everything."""

    def on_progress(self, event: ProgressEvent) -> None:
        pass

    def on_output(self, line: str) -> None:
        pass

    def on_error(self, line: str) -> None:
        pass


class EventReporter:
    """Fan-out reporter holding subscribed callbacks.

    A callback that raises is logged and skipped so one bad listener cannot
    abort a conversion or stall a stream reader.
    """

    def __init__(self) -> None:
        self._progress: list[ProgressCallback] = []
        self._output: list[LineCallback] = []
        self._error: list[LineCallback] = []

    def subscribe(
        self,
        *,
        progress: ProgressCallback | None = None,
        output: LineCallback | None = None,
        error: LineCallback | None = None,
    ) -> None:
        """Register callbacks for any of the three notification kinds."""
        if progress is not None:
            self._progress.append(progress)
        if output is not None:
            self._output.append(output)
        if error is not None:
            self._error.append(error)

    def add(self, reporter: Reporter) -> None:
        """Subscribe all three methods of another reporter."""
        self.subscribe(
            progress=reporter.on_progress,
            output=reporter.on_output,
            error=reporter.on_error,
        )

    def _dispatch(self, callbacks: list[Callable[[Any], None]], payload: Any) -> None:
        for callback in list(callbacks):
            try:
                callback(payload)
            except Exception:
                logger.exception("Listener %r failed", callback)

    def on_progress(self, event: ProgressEvent) -> None:
        self._dispatch(self._progress, event)

    def on_output(self, line: str) -> None:
        self._dispatch(self._output, line)

    def on_error(self, line: str) -> None:
        self._dispatch(self._error, line)


class Notification(NamedTuple):
    """A tagged notification: kind is "progress", "output" or "error"."""

    kind: str
    payload: ProgressEvent | str


class QueueReporter:
    """Reporter that posts notifications onto a queue.

    Lets a pipeline run on a worker thread while the thread owning the
    caller's state consumes events at its own pace.
    """

    def __init__(self, events: "queue.Queue[Notification] | None" = None) -> None:
        self.events: queue.Queue[Notification] = events or queue.Queue()

    def on_progress(self, event: ProgressEvent) -> None:
        self.events.put(Notification("progress", event))

    def on_output(self, line: str) -> None:
        self.events.put(Notification("output", line))

    def on_error(self, line: str) -> None:
        self.events.put(Notification("error", line))

    def drain(self) -> list[Notification]:
        """Pop every notification currently queued."""
        drained: list[Notification] = []
        while True:
            try:
                drained.append(self.events.get_nowait())
            except queue.Empty:
                return drained
