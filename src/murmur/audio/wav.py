"""
Minimal RIFF/WAVE reader used by file replay.

Only uncompressed PCM (8/16/24/32-bit integer) and IEEE float (32/64-bit) payloads are
understood. Every decode path reduces multi-channel audio to its first channel by
taking one sample and advancing by the channel count.
"""

import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import numpy as np

from murmur.errors import WavFormatError
from murmur.logs import get_logger

logger = get_logger("snd/wav")

WAVE_FORMAT_PCM = 0x0001
WAVE_FORMAT_IEEE_FLOAT = 0x0003
WAVE_FORMAT_EXTENSIBLE = 0xFFFE

_SUPPORTED_PCM_BITS = (8, 16, 24, 32)
_SUPPORTED_FLOAT_BITS = (32, 64)


@dataclass(frozen=True)
class WavInfo:
  """Layout of a WAV payload, recovered from its header."""

  sample_rate: int
  channels: int
  bits_per_sample: int
  format_tag: int
  data_offset: int
  """Byte offset of the first payload byte from the start of the file."""

  data_size: int
  """Payload size in bytes, truncated to whole sample frames."""

  @property
  def bytes_per_sample(self) -> int:
    return self.bits_per_sample // 8

  @property
  def block_align(self) -> int:
    """Bytes per sample frame (one sample for every channel)."""
    return self.bytes_per_sample * self.channels

  @property
  def frame_count(self) -> int:
    return self.data_size // self.block_align

  @property
  def duration(self) -> float:
    return self.frame_count / self.sample_rate


def parse_header(stream: BinaryIO, file_size: int | None = None) -> WavInfo:
  """
  Walk the RIFF chunk list until the `data` chunk and return the payload layout.

  The stream is left positioned at the first payload byte.

  :param stream: Binary stream positioned at the start of the file.
  :param file_size: Total size of the file, used to bound streaming-style `data` chunks
    whose declared size is 0 or 0xFFFFFFFF.
  :raises WavFormatError: If the container tag, `fmt ` chunk or `data` chunk is missing,
    or the encoding is not one we decode.
  """
  riff = stream.read(12)
  if len(riff) < 12 or riff[0:4] != b"RIFF" or riff[8:12] != b"WAVE":
    raise WavFormatError("missing RIFF/WAVE container tag")

  fmt: tuple[int, int, int, int] | None = None
  position = 12

  while True:
    chunk_header = stream.read(8)
    if len(chunk_header) < 8:
      raise WavFormatError("no data chunk found")
    chunk_id, chunk_size = struct.unpack("<4sI", chunk_header)
    position += 8

    if chunk_id == b"fmt ":
      if chunk_size < 16:
        raise WavFormatError(f"fmt chunk too short ({chunk_size} bytes)")
      body = stream.read(chunk_size)
      if len(body) < chunk_size:
        raise WavFormatError("truncated fmt chunk")
      format_tag, channels, sample_rate, _byte_rate, _block_align, bits = struct.unpack(
        "<HHIIHH", body[:16]
      )
      if format_tag == WAVE_FORMAT_EXTENSIBLE and chunk_size >= 40:
        # The real encoding lives in the first two bytes of the SubFormat GUID
        (format_tag,) = struct.unpack("<H", body[24:26])
      fmt = (format_tag, channels, sample_rate, bits)
      position += chunk_size
      if chunk_size % 2:
        stream.read(1)
        position += 1
      continue

    if chunk_id == b"data":
      if fmt is None:
        raise WavFormatError("data chunk precedes fmt chunk")
      format_tag, channels, sample_rate, bits = fmt
      _validate_encoding(format_tag, channels, sample_rate, bits)

      data_size = chunk_size
      if file_size is not None:
        unbounded = chunk_size in (0, 0xFFFFFFFF)
        if unbounded or position + chunk_size > file_size:
          data_size = max(0, file_size - position)

      block_align = (bits // 8) * channels
      info = WavInfo(
        sample_rate=sample_rate,
        channels=channels,
        bits_per_sample=bits,
        format_tag=format_tag,
        data_offset=position,
        data_size=data_size - (data_size % block_align),
      )
      logger.debug(
        "Parsed WAV header",
        sample_rate=info.sample_rate,
        channels=info.channels,
        bits=info.bits_per_sample,
        frames=info.frame_count,
      )
      return info

    # Skip LIST, fact, cue and anything else we don't care about
    skip = chunk_size + (chunk_size % 2)
    stream.seek(skip, 1)
    position += skip


def _validate_encoding(format_tag: int, channels: int, sample_rate: int, bits: int) -> None:
  if channels < 1:
    raise WavFormatError(f"invalid channel count {channels}")
  if sample_rate < 1:
    raise WavFormatError(f"invalid sample rate {sample_rate}")
  if format_tag == WAVE_FORMAT_PCM:
    if bits not in _SUPPORTED_PCM_BITS:
      raise WavFormatError(f"unsupported PCM bit depth {bits}")
  elif format_tag == WAVE_FORMAT_IEEE_FLOAT:
    if bits not in _SUPPORTED_FLOAT_BITS:
      raise WavFormatError(f"unsupported float bit depth {bits}")
  else:
    raise WavFormatError(f"unsupported format tag 0x{format_tag:04x}")


def decode_first_channel(raw: bytes, info: WavInfo) -> np.ndarray:
  """
  Decode interleaved payload bytes into normalized float32 samples of the first channel.

  Trailing bytes that do not form a whole sample frame are ignored.
  """
  usable = len(raw) - (len(raw) % info.block_align)
  if usable == 0:
    return np.zeros(0, dtype=np.float32)
  raw = raw[:usable]
  channels = info.channels
  bits = info.bits_per_sample

  if info.format_tag == WAVE_FORMAT_IEEE_FLOAT:
    dtype = "<f4" if bits == 32 else "<f8"
    interleaved = np.frombuffer(raw, dtype=dtype).reshape(-1, channels)
    return interleaved[:, 0].astype(np.float32)

  if bits == 8:
    interleaved = np.frombuffer(raw, dtype=np.uint8).reshape(-1, channels)
    first = interleaved[:, 0].astype(np.float32)
    return (first - np.float32(128.0)) / np.float32(128.0)

  if bits == 16:
    interleaved = np.frombuffer(raw, dtype="<i2").reshape(-1, channels)
    return interleaved[:, 0].astype(np.float32) / np.float32(32768.0)

  if bits == 24:
    triplets = np.frombuffer(raw, dtype=np.uint8).reshape(-1, channels, 3)[:, 0, :]
    value = (
      triplets[:, 0].astype(np.int32)
      | (triplets[:, 1].astype(np.int32) << 8)
      | (triplets[:, 2].astype(np.int32) << 16)
    )
    value = (value ^ 0x800000) - 0x800000  # sign-extend
    return value.astype(np.float32) / np.float32(8388608.0)

  interleaved = np.frombuffer(raw, dtype="<i4").reshape(-1, channels)
  return (interleaved[:, 0].astype(np.float64) / 2147483648.0).astype(np.float32)


class WavReader:
  """Sequential first-channel reader over a WAV file."""

  def __init__(self, path: Path | str) -> None:
    self.path = Path(path)
    self._file: BinaryIO | None = None
    self._remaining = 0
    self.info: WavInfo | None = None

  def open(self) -> WavInfo:
    """Open the file and parse its header. Raises WavFormatError or OSError."""
    file_size = self.path.stat().st_size
    handle = open(self.path, "rb")
    try:
      self.info = parse_header(handle, file_size=file_size)
    except Exception:
      handle.close()
      raise
    self._file = handle
    self._remaining = self.info.data_size
    return self.info

  def read_frames(self, count: int) -> np.ndarray | None:
    """
    Read up to `count` sample frames.

    :returns: First-channel float32 samples, shorter than `count` at the end of the
      payload, or None once the payload is exhausted.
    """
    if self._file is None or self.info is None:
      raise WavFormatError("reader is not open")
    if self._remaining <= 0:
      return None

    wanted = min(count * self.info.block_align, self._remaining)
    raw = self._file.read(wanted)
    if not raw:
      self._remaining = 0
      return None
    self._remaining -= len(raw)
    samples = decode_first_channel(raw, self.info)
    return samples if samples.size else None

  def close(self) -> None:
    if self._file is not None:
      self._file.close()
      self._file = None

  def __enter__(self) -> "WavReader":
    self.open()
    return self

  def __exit__(self, *exc_info) -> None:
    self.close()


def probe(path: Path | str) -> WavInfo:
  """Parse the header of `path` without keeping the file open."""
  with WavReader(path) as reader:
    assert reader.info is not None
    return reader.info
