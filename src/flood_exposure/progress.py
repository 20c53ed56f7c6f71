# -*- coding: utf-8 -*-

"""
Progress reporting as an event stream.

The pipeline publishes ProgressEvent values to a ProgressStream; a consumer
(the command line progress bar, a web socket, a test) iterates the stream
asynchronously. Publishing never blocks, so the synchronous tagging loops
can publish without suspending.
"""

import asyncio
from dataclasses import dataclass

_CLOSED = object()


@dataclass(frozen=True)
class ProgressEvent:
    stage: str
    current: int
    total: int
    message: str


class ProgressStream:
    """
    Single-consumer channel of ProgressEvents.

    Within one stage of one run the processed count never decreases;
    publish() raises ValueError for an event that would go backwards.
    begin_run() starts a new run, so a stream can follow several analyses.
    """

    def __init__(self):
        self._queue = asyncio.Queue()
        self._last = {}
        self._closed = False

    def begin_run(self):
        self._last.clear()

    def publish(self, event):
        if self._closed:
            raise RuntimeError("Progress stream is closed")
        last = self._last.get(event.stage)
        if last is not None and event.current < last:
            raise ValueError(
                f"Progress for stage '{event.stage}' went backwards: {last} -> {event.current}"
            )
        self._last[event.stage] = event.current
        self._queue.put_nowait(event)

    def close(self):
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    @property
    def closed(self):
        return self._closed

    async def __aiter__(self):
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item

    def drain(self):
        """Return every event queued so far without waiting."""
        events = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is not _CLOSED:
                events.append(item)
        return events


class ProgressCadence:
    """
    Decides which items of a loop produce a progress event.

    An event is due for the first item, every ``every``-th item after it and
    unconditionally for the last one.
    """

    def __init__(self, stream, stage, total, every, message):
        self.stream = stream
        self.stage = stage
        self.total = total
        self.every = every
        self.message = message

    def announce(self, message):
        if self.stream is not None:
            self.stream.publish(ProgressEvent(self.stage, 0, self.total, message))

    def step(self, index):
        if self.stream is None:
            return
        if index % self.every == 0 or index == self.total - 1:
            message = self.message.format(current=index + 1, total=self.total)
            self.stream.publish(ProgressEvent(self.stage, index + 1, self.total, message))


def publish(stream, stage, current, total, message):
    if stream is not None:
        stream.publish(ProgressEvent(stage, current, total, message))
