"""
Audio acquisition for the dictation pipeline.

An AudioSource delivers fixed-size frames of normalized mono float32 samples to a
callback from one dedicated worker thread. Three interchangeable backends exist:

  - device: blocking reads from a sounddevice input stream (int16 PCM)
  - file: paced replay of an uncompressed WAV file
  - synthetic: a deterministic tone plus seeded noise, for machines without audio hardware

Failing to reach a capture device is not an error: the source falls back to the
synthetic backend. Only a misconfigured replay file makes initialization fail.
"""

import threading
from collections.abc import Callable
from typing import Any

import numpy as np

from murmur.audio.wav import WavReader
from murmur.config import AudioBackend, AudioConfig
from murmur.constants import SAMPLE_RATE
from murmur.errors import WavFormatError
from murmur.format import Seconds
from murmur.logs import get_logger

FrameCallback = Callable[[np.ndarray], None]
CompletionCallback = Callable[[], None]


class AudioSource:
  """Produces frames from a capture device, a replayed file, or a synthetic generator."""

  def __init__(self, config: AudioConfig | None = None, sample_rate: int = SAMPLE_RATE) -> None:
    self.config: AudioConfig = config or AudioConfig()
    self.sample_rate = sample_rate
    self.logger = get_logger("snd/src")

    self._backend: AudioBackend | None = None
    self._frame_callback: FrameCallback | None = None
    self._completion_callback: CompletionCallback | None = None

    self._lock = threading.Lock()
    """Serializes start/stop transitions."""

    self._stop_event = threading.Event()
    self._thread: threading.Thread | None = None
    self._stopping = False
    """True from stop() until the worker has been joined."""

    self._stream: Any = None
    """sounddevice.InputStream when the device backend is active."""

    self._reader: WavReader | None = None
    self._phase = 0
    self._rng = np.random.default_rng(self.config.synthetic_seed)

    self.completed = threading.Event()
    """Set when file replay has delivered the last frame of the file."""

    self.frames_delivered = 0

  @property
  def backend(self) -> AudioBackend | None:
    """The backend resolved by initialize(), or None before initialization."""
    return self._backend

  @property
  def is_active(self) -> bool:
    thread = self._thread
    return thread is not None and thread.is_alive() and not self._stopping

  def set_frame_callback(self, callback: FrameCallback) -> None:
    """Register the frame consumer. Must be called before start()."""
    self._frame_callback = callback

  def set_completion_callback(self, callback: CompletionCallback | None) -> None:
    """Register a callback fired once when file replay runs out of audio."""
    self._completion_callback = callback

  def initialize(self) -> bool:
    """
    Acquire the configured backend.

    :returns: False only for configuration errors (a replay file that is missing or not a
      readable WAV). Unreachable capture devices degrade to the synthetic backend.
    """
    requested = self.config.backend
    if requested == AudioBackend.AUTO and self.config.file_path is not None:
      requested = AudioBackend.FILE

    if requested == AudioBackend.FILE:
      return self._initialize_file()

    if requested in (AudioBackend.AUTO, AudioBackend.DEVICE) and self._open_device():
      self._backend = AudioBackend.DEVICE
      return True

    if requested != AudioBackend.SYNTHETIC:
      self.logger.warning(
        "No audio capture available, running in demo mode with synthetic audio",
        requested=str(self.config.backend),
      )
    self._backend = AudioBackend.SYNTHETIC
    return True

  def _initialize_file(self) -> bool:
    path = self.config.file_path
    if path is None:
      self.logger.error("File backend selected but no file_path configured")
      return False

    reader = WavReader(path)
    try:
      info = reader.open()
    except (OSError, WavFormatError) as e:
      self.logger.error("Cannot replay audio file", path=str(path), error=str(e))
      return False

    if info.sample_rate != self.sample_rate:
      self.logger.warning(
        "Replay file sample rate differs from pipeline rate; samples are not resampled",
        file_rate=info.sample_rate,
        pipeline_rate=self.sample_rate,
      )

    self.logger.info(
      "Replaying audio file",
      path=str(path),
      channels=info.channels,
      bits=info.bits_per_sample,
      duration=Seconds(info.duration),
    )
    self._reader = reader
    self._backend = AudioBackend.FILE
    return True

  def _open_device(self) -> bool:
    try:
      import sounddevice as sd
    except OSError as e:
      # Raised when the PortAudio shared library is absent
      self.logger.warning("PortAudio unavailable", error=str(e))
      return False

    try:
      stream = sd.InputStream(
        device=self.config.device,
        channels=1,
        samplerate=self.sample_rate,
        dtype="int16",
        blocksize=self.config.frame_samples,
      )
      stream.start()
    except (sd.PortAudioError, ValueError, OSError) as e:
      self.logger.warning("Audio device initialization failed", error=str(e))
      return False

    try:
      stream.read(self.config.frame_samples)
    except (sd.PortAudioError, OSError) as e:
      self.logger.warning(
        "Audio capture test failed, check permissions or device access", error=str(e)
      )
    stream.stop()

    self._stream = stream
    self.logger.info("Using capture device", device=self.config.device or "default")
    return True

  def start(self) -> bool:
    """
    Start delivering frames on a dedicated worker thread.

    Calling start() while already running is a no-op success.
    """
    while True:
      with self._lock:
        previous = self._thread
        if previous is None or not previous.is_alive():
          if not self._launch():
            return False
          break
        if not self._stopping:
          return True
      if previous is threading.current_thread():
        self.logger.error("Cannot restart capture from the capture thread")
        return False
      # A stop() on another thread is still waiting for the previous worker
      previous.join()

    self.logger.info("Audio capture started", backend=str(self._backend))
    return True

  def _launch(self) -> bool:
    """Spawn the worker for the resolved backend. Caller must hold the lock."""
    if self._backend is None:
      self.logger.error("AudioSource not initialized")
      return False

    if self._frame_callback is None:
      self.logger.error("No frame callback registered")
      return False

    if self._backend == AudioBackend.DEVICE:
      target = self._device_loop
    elif self._backend == AudioBackend.FILE:
      target = self._file_loop
    else:
      target = self._synthetic_loop

    # Each run gets its own event so a late stop() can never un-stop a newer run
    self._stop_event = threading.Event()
    self.completed.clear()
    self._thread = threading.Thread(
      target=target,
      args=(self._stop_event,),
      name=f"capture-{self._backend}",
      daemon=True,
    )
    self._stopping = False
    self._thread.start()
    return True

  def stop(self) -> None:
    """Stop the worker thread and wait for it to exit. No frames are delivered afterwards."""
    with self._lock:
      thread = self._thread
      if thread is None:
        return
      self._stopping = True
      self._stop_event.set()

    # Joined outside the lock: the completion callback may itself call stop()
    if thread is threading.current_thread():
      return
    thread.join()

    with self._lock:
      if self._thread is thread:
        self._thread = None
        self._stopping = False

    self.logger.info("Audio capture stopped", frames_delivered=self.frames_delivered)

  def cleanup(self) -> None:
    """Stop capture and release the device stream and replay file."""
    self.stop()
    if self._stream is not None:
      self._stream.close()
      self._stream = None
    if self._reader is not None:
      self._reader.close()
      self._reader = None
    self._backend = None

  def _deliver(self, frame: np.ndarray) -> None:
    callback = self._frame_callback
    if callback is None:
      return
    try:
      callback(frame)
    except Exception:
      self.logger.exception("Error in frame callback")
    self.frames_delivered += 1

  def _pace(self, samples: int, stop_event: threading.Event) -> bool:
    """Sleep for the real-time duration of `samples`. Returns True if stop was requested."""
    if not self.config.realtime_replay:
      return stop_event.is_set()
    return stop_event.wait(samples / self.sample_rate)

  def _device_loop(self, stop_event: threading.Event) -> None:
    stream = self._stream
    frames = self.config.frame_samples
    scale = np.float32(32768.0)

    try:
      stream.start()
    except Exception:
      self.logger.exception("Failed to start capture stream")
      return

    try:
      while not stop_event.is_set():
        try:
          data, overflowed = stream.read(frames)
        except Exception:
          self.logger.exception("Capture read failed")
          break

        if overflowed:
          self.logger.warning("Input overflow, samples were dropped by the device")

        self._deliver(np.asarray(data)[:, 0].astype(np.float32) / scale)
    finally:
      try:
        stream.stop()
      except Exception:
        self.logger.exception("Failed to stop capture stream")

  def _file_loop(self, stop_event: threading.Event) -> None:
    frames = self.config.frame_samples

    if self._reader is None:
      # A previous replay ran to completion; start over from the top of the file
      assert self.config.file_path is not None
      self._reader = WavReader(self.config.file_path)
      try:
        self._reader.open()
      except (OSError, WavFormatError) as e:
        self.logger.error("Cannot reopen audio file", error=str(e))
        self._reader = None
        return

    reader = self._reader
    while not stop_event.is_set():
      try:
        frame = reader.read_frames(frames)
      except OSError as e:
        self.logger.error("Replay read failed", error=str(e))
        frame = None

      if frame is None:
        reader.close()
        self._reader = None
        self.completed.set()
        self.logger.info("Audio file replay complete", frames_delivered=self.frames_delivered)
        if self._completion_callback is not None:
          try:
            self._completion_callback()
          except Exception:
            self.logger.exception("Error in completion callback")
        return

      self._deliver(frame)
      if self._pace(frames, stop_event):
        break

  def _synthetic_loop(self, stop_event: threading.Event) -> None:
    frames = self.config.frame_samples
    frequency = self.config.synthetic_frequency

    while not stop_event.is_set():
      t = (self._phase + np.arange(frames, dtype=np.float64)) / self.sample_rate
      tone = 0.3 * np.sin(2.0 * np.pi * frequency * t)
      noise = self._rng.normal(0.0, 0.1, frames)
      self._phase += frames

      self._deliver(np.clip(tone + noise, -1.0, 1.0).astype(np.float32))
      if self._pace(frames, stop_event):
        break
