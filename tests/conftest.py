"""Shared test doubles and helpers."""

import struct
import threading
import time
from pathlib import Path

import numpy as np
import pytest

from murmur.audio.wav import WAVE_FORMAT_IEEE_FLOAT, WAVE_FORMAT_PCM


def encode_payload(data: np.ndarray, bits: int, format_tag: int) -> bytes:
  """Interleave (frames, channels) sample data into little-endian payload bytes."""
  if format_tag == WAVE_FORMAT_IEEE_FLOAT:
    return data.astype("<f4" if bits == 32 else "<f8").tobytes()
  if bits == 8:
    return data.astype(np.uint8).tobytes()
  if bits == 16:
    return data.astype("<i2").tobytes()
  if bits == 24:
    words = data.astype("<i4").reshape(-1)
    return words.view(np.uint8).reshape(-1, 4)[:, :3].tobytes()
  return data.astype("<i4").tobytes()


def write_wav(
  path: Path,
  data: np.ndarray,
  sample_rate: int = 16000,
  bits: int = 16,
  format_tag: int = WAVE_FORMAT_PCM,
  extra_chunks: bytes = b"",
  data_size: int | None = None,
) -> Path:
  """
  Write a minimal WAV file.

  :param data: Samples shaped (frames, channels), or 1-D for mono, already in the
    integer or float domain of the target encoding.
  :param extra_chunks: Raw chunk bytes inserted between `fmt ` and `data`.
  :param data_size: Override for the declared `data` chunk size.
  """
  if data.ndim == 1:
    data = data.reshape(-1, 1)
  channels = data.shape[1]
  payload = encode_payload(data, bits, format_tag)
  block_align = channels * bits // 8

  fmt = struct.pack(
    "<HHIIHH", format_tag, channels, sample_rate, sample_rate * block_align, block_align, bits
  )
  declared = len(payload) if data_size is None else data_size
  body = (
    b"WAVE"
    + b"fmt "
    + struct.pack("<I", len(fmt))
    + fmt
    + extra_chunks
    + b"data"
    + struct.pack("<I", declared)
    + payload
  )
  if len(payload) % 2:
    body += b"\x00"
  path.write_bytes(b"RIFF" + struct.pack("<I", len(body)) + body)
  return path


class FakeRecognizer:
  """
  Records every window it is asked to recognize.

  `texts` may be a list indexed by call number, a callable `(index, samples) -> str`,
  or None to answer "segment <index>".
  """

  def __init__(self, texts=None, fail_on: tuple[int, ...] = (), delay: float = 0.0) -> None:
    self.texts = texts
    self.fail_on = fail_on
    self.delay = delay
    self.calls: list[np.ndarray] = []
    self.sample_rates: list[int] = []
    self.durations_ms: list[int] = []
    self.threads: set[str] = set()
    self.active = 0
    self.max_active = 0
    """Most recognize() calls ever in flight at once."""
    self._lock = threading.Lock()

  def recognize(self, samples: np.ndarray, sample_rate: int, duration_ms: int) -> str:
    with self._lock:
      index = len(self.calls)
      self.active += 1
      self.max_active = max(self.max_active, self.active)
      self.calls.append(samples.copy())
      self.sample_rates.append(sample_rate)
      self.durations_ms.append(duration_ms)
      self.threads.add(threading.current_thread().name)

    try:
      return self._answer(index, samples)
    finally:
      with self._lock:
        self.active -= 1

  def _answer(self, index: int, samples: np.ndarray) -> str:
    if self.delay:
      time.sleep(self.delay)
    if index in self.fail_on:
      raise RuntimeError(f"recognizer failure on window {index}")
    if self.texts is None:
      return f"segment {index}"
    if callable(self.texts):
      return self.texts(index, samples)
    return self.texts[index] if index < len(self.texts) else ""


class FakeGenerator:
  """Text generator that can be held mid-generation until `release` is set."""

  def __init__(
    self,
    response: str = "  Cleaned text.  ",
    hold: bool = False,
    error: Exception | None = None,
  ) -> None:
    self.response = response
    self.error = error
    self.release = threading.Event()
    if not hold:
      self.release.set()
    self.started = threading.Event()
    self.prompts: list[str] = []
    self.closed = False

  def generate(self, prompt: str, cancel_event: threading.Event | None = None) -> str:
    self.prompts.append(prompt)
    self.started.set()
    while not self.release.wait(0.005):
      if cancel_event is not None and cancel_event.is_set():
        return "partial output"
    if self.error is not None:
      raise self.error
    return self.response

  def close(self) -> None:
    self.closed = True


class Collector:
  """Thread-safe callback sink."""

  def __init__(self) -> None:
    self._lock = threading.Lock()
    self.items: list = []
    self.event = threading.Event()

  def __call__(self, item) -> None:
    with self._lock:
      self.items.append(item)
    self.event.set()

  def snapshot(self) -> list:
    with self._lock:
      return list(self.items)


@pytest.fixture
def collector() -> Collector:
  return Collector()
