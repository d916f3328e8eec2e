"""
Sliding sample buffer from which fixed-length overlapping windows are cut.
"""

import numpy as np

from murmur.config import WindowConfig
from murmur.format import Samples


class SlidingBuffer:
  """
  Growable sample store that yields fixed-length windows from its head.

  Samples are appended at the tail. Once at least `chunk_samples` are held, a window
  of exactly that length can be cut from the front; advancing then drops
  `chunk_samples - overlap_samples` samples so the last `overlap_samples` of the
  window seed the next one. No sample is ever skipped between windows.

  Thread Safety:
    None. The buffer is owned by the windowing thread for its whole lifetime.
  """

  def __init__(self, config: WindowConfig) -> None:
    """
    :param
        config: Window geometry. `overlap_samples` must be less than `chunk_samples`.
    """
    self.config: WindowConfig = config

    self.chunk_samples: int = config.chunk_samples
    self.overlap_samples: int = config.overlap_samples

    self._samples: np.ndarray = np.zeros(0, dtype=np.float32)
    """Buffered audio, oldest sample first."""

    self.total_appended: int = 0
    """Samples ever appended, for diagnostics."""

    self.total_discarded: int = 0
    """Samples ever dropped from the head by advance() or take_remaining()."""

  def append(self, samples: np.ndarray) -> None:
    """
    Append samples to the tail of the buffer.

    :param
        samples: 1-D float32 samples normalized to [-1.0, 1.0].
    """
    if samples.size == 0:
      return
    samples = np.asarray(samples, dtype=np.float32).reshape(-1)
    if self._samples.size == 0:
      self._samples = samples.copy()
    else:
      self._samples = np.concatenate((self._samples, samples))
    self.total_appended += samples.size

  def extend(self, frames: list[np.ndarray]) -> None:
    """Append a batch of frames with a single concatenation."""
    frames = [f for f in frames if f.size]
    if not frames:
      return
    batch = np.concatenate([np.asarray(f, dtype=np.float32).reshape(-1) for f in frames])
    self.append(batch)

  def has_window(self) -> bool:
    """True while at least one full window is buffered."""
    return self._samples.size >= self.chunk_samples

  def cut_window(self) -> np.ndarray:
    """
    Copy the first `chunk_samples` samples.

    The buffer is not modified; call advance() once the window has been handled.

    :raises ValueError: If fewer than `chunk_samples` samples are buffered.
    """
    if not self.has_window():
      raise ValueError(
        f"cannot cut a window of {Samples(self.chunk_samples)} "
        f"from {Samples(self._samples.size)}"
      )
    return self._samples[: self.chunk_samples].copy()

  def advance(self) -> None:
    """Drop one window step from the head, keeping the overlap for the next window."""
    step = min(self.config.step_samples, self._samples.size)
    self._samples = self._samples[step:]
    self.total_discarded += step

  def take_remaining(self) -> np.ndarray:
    """Return a copy of every buffered sample and clear the buffer."""
    remaining = self._samples.copy()
    self.total_discarded += remaining.size
    self._samples = np.zeros(0, dtype=np.float32)
    return remaining

  def clear(self) -> None:
    """Drop all buffered samples without counting them as consumed."""
    self._samples = np.zeros(0, dtype=np.float32)

  def __len__(self) -> int:
    return int(self._samples.size)

  @property
  def duration(self) -> float:
    """Buffered audio in seconds."""
    return self._samples.size / self.config.sample_rate
