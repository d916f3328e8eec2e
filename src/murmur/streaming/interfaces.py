"""
Protocol interfaces for the streaming transcription components.

Defines the contract of the speech recognizer consumed by the windower and the
shape of the callbacks it drives, using Python's Protocol system for structural
typing.
"""

from collections.abc import Callable
from typing import Protocol

import numpy as np

SegmentCallback = Callable[[str], None]
"""Receives each accepted transcript segment, in the order windows were recognized."""


class Recognizer(Protocol):
  """
  Protocol for speech recognizers.

  Implementations turn one window of audio into text. Calls are made synchronously
  from the windowing thread, one at a time.
  """

  def recognize(self, samples: np.ndarray, sample_rate: int, duration_ms: int) -> str:
    """
    Transcribe a window of audio.

    :param samples: Mono float32 samples normalized to [-1.0, 1.0].
    :param sample_rate: Sample rate of `samples` in Hz.
    :param duration_ms: Duration covered by `samples` in milliseconds.
    :returns: The recognized text, possibly empty.
    :raises Exception: Any failure; the caller logs it and treats the window as silent.
    """
    ...


class SegmentSink(Protocol):
  """Anything that collects accepted transcript segments."""

  def append(self, segment: str) -> None: ...
