"""
Streaming windowing: frame hand-off, the sliding sample buffer and the windower
that drives the recognizer.
"""

from .buffer import SlidingBuffer
from .frame_queue import FrameQueue
from .interfaces import Recognizer, SegmentCallback, SegmentSink
from .windower import StreamingWindower, WindowResult

__all__ = [
  "FrameQueue",
  "Recognizer",
  "SegmentCallback",
  "SegmentSink",
  "SlidingBuffer",
  "StreamingWindower",
  "WindowResult",
]
