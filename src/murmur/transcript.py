"""
Transcript accumulation and segment filtering.
"""

import threading

from murmur.constants import DISCARDED_SEGMENTS
from murmur.logs import get_logger

logger = get_logger("txt")


def is_discardable_segment(text: str | None) -> bool:
  """True for recognizer output that carries no speech: blank, a lone "." or [BLANK_AUDIO]."""
  if text is None:
    return True
  return text.strip() in DISCARDED_SEGMENTS


def filter_segment(text: str | None) -> str | None:
  """Return the trimmed segment, or None if it must not reach the transcript."""
  if is_discardable_segment(text):
    return None
  assert text is not None
  return text.strip()


class TranscriptAccumulator:
  """
  Collects accepted segments into one continuous, space-separated string.

  Thread Safety:
    append(), snapshot() and reset() serialize on one lock, so the windowing thread can
    write while a control thread reads or clears.
  """

  def __init__(self) -> None:
    self._lock = threading.Lock()
    self._text = ""
    self._segment_count = 0

  def append(self, segment: str) -> None:
    """
    Append a segment, separated from the existing text by exactly one space.

    Leading and trailing whitespace is trimmed. Segments that are empty after trimming
    are ignored.
    """
    segment = segment.strip()
    if not segment:
      return

    with self._lock:
      if self._text and not self._text.endswith(" "):
        self._text += " "
      self._text += segment
      self._segment_count += 1
      length = len(self._text)

    logger.debug("Segment appended", chars=len(segment), total_chars=length)

  def snapshot(self) -> str:
    """The accumulated text, unmodified."""
    with self._lock:
      return self._text

  def reset(self) -> None:
    """Clear the accumulated text."""
    with self._lock:
      self._text = ""
      self._segment_count = 0

  @property
  def segment_count(self) -> int:
    with self._lock:
      return self._segment_count

  def __len__(self) -> int:
    with self._lock:
      return len(self._text)
