"""
Frame scheduling for the preview renderer.

The host owns the frame clock: a UI loop calls `run_frame()` once per display
frame, a proof job or a test calls `flush()`. Callbacks may be queued from
worker threads (photo decode, font preload); they always run on the thread
that drives frames.
"""

import threading
from collections import deque
from typing import Callable, Deque

from loguru import logger

FrameCallback = Callable[[], None]


class FrameScheduler:
    """Queue of callbacks to run on the next display frame."""

    def __init__(self, max_flush_frames: int = 100):
        self._queue: Deque[FrameCallback] = deque()
        self._lock = threading.Lock()
        self.max_flush_frames = max_flush_frames
        self.frame_count = 0

    def request_frame(self, callback: FrameCallback) -> None:
        with self._lock:
            self._queue.append(callback)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def run_frame(self) -> int:
        """Run the callbacks queued before this frame started; returns how many ran."""
        with self._lock:
            callbacks = list(self._queue)
            self._queue.clear()

        for callback in callbacks:
            callback()

        self.frame_count += 1
        return len(callbacks)

    def flush(self) -> int:
        """Run frames until nothing is queued; returns the number of frames run."""
        frames = 0
        while self.pending:
            if frames >= self.max_flush_frames:
                logger.warning(f"Frame queue still busy after {frames} frames")
                break
            self.run_frame()
            frames += 1
        return frames
