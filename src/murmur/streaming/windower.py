"""
Streaming windower: turns a stream of audio frames into recognized transcript segments.
"""

import threading
import time
from dataclasses import dataclass

import numpy as np

from murmur.config import WindowConfig
from murmur.format import Seconds, samples_to_ms, samples_to_seconds
from murmur.logs import get_logger
from murmur.streaming.buffer import SlidingBuffer
from murmur.streaming.frame_queue import FrameQueue
from murmur.streaming.interfaces import Recognizer, SegmentCallback, SegmentSink
from murmur.transcript import filter_segment


@dataclass
class WindowResult:
  """Outcome of recognizing one window."""

  index: int
  """Position of the window in the current run, starting at 0."""

  samples: int
  """Number of samples handed to the recognizer."""

  text: str | None
  """Accepted segment, or None if the recognizer produced nothing usable."""

  processing_time: float
  """Seconds spent inside the recognizer."""

  final: bool = False
  """True for the flush of leftover audio performed on stop()."""


class StreamingWindower:
  """
  Cuts overlapping fixed-length windows from incoming audio and recognizes them.

  Frames arrive from the capture thread through add_frames() and are handed to a
  dedicated windowing thread via a FrameQueue. That thread owns the SlidingBuffer and
  calls the recognizer inline, so at most one recognition is in flight and segments
  are delivered strictly in the order their windows were cut.

  On stop() the thread drains the queue one last time, recognizes any remaining full
  windows and then the leftover tail (even a partial window), so no trailing audio is
  dropped.
  """

  def __init__(
    self,
    recognizer: Recognizer,
    config: WindowConfig | None = None,
    accumulator: SegmentSink | None = None,
  ) -> None:
    self.recognizer = recognizer
    self.config: WindowConfig = config or WindowConfig()
    self.logger = get_logger("win")

    self._accumulator: SegmentSink | None = accumulator
    self._segment_callback: SegmentCallback | None = None
    self._listeners: list[SegmentCallback] = []

    self._queue = FrameQueue()
    self._queue.close()  # frames are refused until start()
    self._buffer = SlidingBuffer(self.config)

    self._lock = threading.Lock()
    self._thread: threading.Thread | None = None
    self._stopping = False
    """True from stop() until the previous thread has been joined."""

    self.windows_processed: int = 0
    """Recognizer invocations in the current run, including the final flush."""

    self.recognition_time: float = 0.0
    """Seconds spent inside the recognizer in the current run."""

    self._consumed_at_start = 0

  @property
  def is_active(self) -> bool:
    thread = self._thread
    return thread is not None and thread.is_alive() and not self._stopping

  def set_segment_callback(self, callback: SegmentCallback | None) -> None:
    """Set the primary callback that receives every accepted segment."""
    self._segment_callback = callback

  def add_segment_listener(self, listener: SegmentCallback) -> None:
    """Subscribe an additional observer to accepted segments."""
    self._listeners.append(listener)

  def set_accumulator(self, accumulator: SegmentSink | None) -> None:
    self._accumulator = accumulator

  def start(self) -> bool:
    """
    Start the windowing thread. A second call while running is a no-op success.

    If a stop() is still flushing the previous run, waits for it to finish first.
    """
    while True:
      with self._lock:
        previous = self._thread
        if previous is None or not previous.is_alive():
          self._buffer.clear()
          self.windows_processed = 0
          self.recognition_time = 0.0
          self._consumed_at_start = self._buffer.total_discarded
          self._queue.reopen()
          self._stopping = False
          self._thread = threading.Thread(
            target=self._windowing_loop, name="windower", daemon=True
          )
          self._thread.start()
          break
        if not self._stopping:
          return True
      if previous is threading.current_thread():
        self.logger.error("Cannot restart windowing from the windowing thread")
        return False
      previous.join()

    self.logger.info(
      "Windowing started",
      chunk=Seconds(self.config.chunk_duration),
      overlap=Seconds(self.config.overlap_duration),
    )
    return True

  def stop(self) -> None:
    """
    Stop accepting frames, flush what is buffered and wait for the thread to exit.

    Every frame accepted before this call is recognized before it returns.
    """
    with self._lock:
      thread = self._thread
      if thread is None:
        return
      self._stopping = True
      self._queue.close()

    if thread is threading.current_thread():
      return
    thread.join()

    with self._lock:
      if self._thread is thread:
        self._thread = None
        self._stopping = False

    consumed = self._buffer.total_discarded - self._consumed_at_start
    self.logger.info(
      "Windowing stopped",
      windows=self.windows_processed,
      audio=samples_to_seconds(consumed, self.config.sample_rate),
      recognition_time=Seconds(self.recognition_time),
    )

  def add_frames(self, frame: np.ndarray) -> bool:
    """
    Queue a frame for windowing. Safe to call from the capture thread.

    :returns: False if the windower is not running and the frame was dropped.
    """
    return self._queue.push(frame)

  def _windowing_loop(self) -> None:
    """Main loop: wait for frames → append → recognize every full window."""
    while True:
      frames = self._queue.drain(self.config.queue_timeout)
      if frames:
        self._buffer.extend(frames)
        self._process_ready_windows()

      if self._queue.closed and len(self._queue) == 0:
        break

    self._flush()
    self.logger.debug("Exiting windowing thread")

  def _process_ready_windows(self) -> None:
    while self._buffer.has_window():
      window = self._buffer.cut_window()
      self._handle_window(window, final=False)
      self._buffer.advance()

  def _flush(self) -> None:
    """Recognize whatever is left in the buffer, however short."""
    remaining = self._buffer.take_remaining()
    if remaining.size == 0:
      return

    self.logger.debug(
      "Flushing remaining audio",
      remaining=samples_to_seconds(remaining.size, self.config.sample_rate),
    )
    self._handle_window(remaining, final=True)

  def _handle_window(self, window: np.ndarray, final: bool) -> None:
    result = self._recognize(window, final)
    self.windows_processed += 1
    self.recognition_time += result.processing_time

    if result.text is not None:
      self._forward(result.text)

  def _recognize(self, window: np.ndarray, final: bool) -> WindowResult:
    sample_rate = self.config.sample_rate
    duration_ms = samples_to_ms(window.size, sample_rate)
    index = self.windows_processed

    start = time.monotonic()
    try:
      raw_text = self.recognizer.recognize(window, sample_rate, duration_ms)
    except Exception:
      self.logger.exception("Recognition failed, treating window as silent", window=index)
      raw_text = ""
    processing_time = time.monotonic() - start

    text = filter_segment(raw_text)
    self.logger.debug(
      "Window recognized",
      window=index,
      final=final,
      audio_duration=samples_to_seconds(window.size, sample_rate),
      recognition_time=Seconds(processing_time),
      discarded=text is None,
    )

    return WindowResult(
      index=index,
      samples=int(window.size),
      text=text,
      processing_time=processing_time,
      final=final,
    )

  def _forward(self, segment: str) -> None:
    if self._accumulator is not None:
      self._accumulator.append(segment)

    callbacks = [self._segment_callback, *self._listeners]
    for callback in callbacks:
      if callback is None:
        continue
      try:
        callback(segment)
      except Exception:
        self.logger.exception("Error in segment callback")
