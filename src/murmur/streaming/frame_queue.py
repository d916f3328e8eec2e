"""
Hand-off of audio frames from the capture thread to the windowing thread.
"""

import threading
from collections import deque

import numpy as np

from murmur.constants import QUEUE_TIMEOUT


class FrameQueue:
  """
  Unbounded FIFO of audio frames with one producer and one consumer.

  The producer never blocks. The consumer waits up to a short timeout for frames to
  arrive and then takes everything queued at once, so bursts are batched while tail
  latency stays bounded by the timeout.

  Thread Safety:
    push(), drain(), close() and reopen() may be called from any thread. All state is
    guarded by a single condition variable.
  """

  def __init__(self) -> None:
    self._frames: deque[np.ndarray] = deque()
    self._condition = threading.Condition()
    self._closed = False

  def push(self, frame: np.ndarray) -> bool:
    """
    Append a frame and wake the consumer.

    :returns: False if the queue is closed and the frame was not accepted.
    """
    with self._condition:
      if self._closed:
        return False
      self._frames.append(frame)
      self._condition.notify()
    return True

  def drain(self, timeout: float = QUEUE_TIMEOUT) -> list[np.ndarray]:
    """
    Wait up to `timeout` seconds for frames, then remove and return all of them.

    Returns immediately when frames are already queued or the queue is closed.

    :returns: Frames in arrival order, possibly empty.
    """
    with self._condition:
      if not self._frames and not self._closed:
        self._condition.wait(timeout)
      frames = list(self._frames)
      self._frames.clear()
    return frames

  def close(self) -> None:
    """Stop accepting frames and wake the consumer. Queued frames remain drainable."""
    with self._condition:
      self._closed = True
      self._condition.notify_all()

  def reopen(self) -> None:
    """Accept frames again, discarding anything left over from a previous run."""
    with self._condition:
      self._frames.clear()
      self._closed = False

  @property
  def closed(self) -> bool:
    with self._condition:
      return self._closed

  def __len__(self) -> int:
    with self._condition:
      return len(self._frames)
