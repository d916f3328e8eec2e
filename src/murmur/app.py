"""
Dictation session: wires audio capture, windowed recognition, transcript
accumulation and post-processing into one start/stop lifecycle.
"""

import threading
from collections.abc import Callable

from murmur.audio import AudioSource
from murmur.config import AudioBackend, MurmurConfig
from murmur.logs import get_logger
from murmur.postprocess import GeneratorFactory, PostProcessor
from murmur.streaming import Recognizer, SegmentCallback, StreamingWindower
from murmur.transcript import TranscriptAccumulator

RecognizerFactory = Callable[[], Recognizer]
TranscriptCallback = Callable[[str], None]


class DictationSession:
  """
  Owns every pipeline component and exposes a single recording toggle.

  Starting a recording clears the transcript and starts the windower before the audio
  source, so no frame is refused. Stopping reverses that order: the source is stopped
  first, then the windower flushes the remaining audio. The finished transcript is then
  published to transcript listeners and, when enabled, submitted for cleanup; cleaned
  text arrives later on the post-processing worker thread.
  """

  def __init__(
    self,
    config: MurmurConfig,
    recognizer_factory: RecognizerFactory,
    generator_factory: GeneratorFactory | None = None,
    source: AudioSource | None = None,
  ) -> None:
    self.config = config
    self.logger = get_logger("app")

    self._recognizer_factory = recognizer_factory
    self._generator_factory = generator_factory

    self.source = source or AudioSource(config.audio, config.window.sample_rate)
    self.accumulator = TranscriptAccumulator()
    self.postprocessor = PostProcessor()
    self.windower: StreamingWindower | None = None

    self._lock = threading.Lock()
    self._recording = False
    self._postprocess_enabled = False

    self._segment_listeners: list[SegmentCallback] = []
    self._transcript_listeners: list[TranscriptCallback] = []
    self._cleaned_listeners: list[TranscriptCallback] = []
    self._status_listeners: list[TranscriptCallback] = []

    self.replay_finished = threading.Event()
    """Set when a file replay delivered its last frame during the current recording."""

  @property
  def is_recording(self) -> bool:
    return self._recording

  @property
  def postprocess_enabled(self) -> bool:
    return self._postprocess_enabled

  def initialize(self) -> bool:
    """
    Acquire audio, load the recognizer and, when configured, the text generator.

    :returns: False if audio or recognition is unusable. A generator that fails to load
      only disables post-processing.
    """
    if not self.source.initialize():
      self.logger.error("Failed to initialize audio source")
      return False

    try:
      recognizer = self._recognizer_factory()
    except Exception:
      self.logger.exception("Failed to initialize recognizer")
      return False

    self.windower = StreamingWindower(recognizer, self.config.window, self.accumulator)
    self.windower.set_segment_callback(self._on_segment)
    self.source.set_frame_callback(self.windower.add_frames)
    self.source.set_completion_callback(self._on_replay_complete)

    if self._generator_factory is not None and self.config.generator.enabled:
      self._postprocess_enabled = self.postprocessor.initialize(self._generator_factory)
      if not self._postprocess_enabled:
        self.logger.warning("Text generator unavailable, post-processing disabled")

    self.logger.info(
      "Session ready",
      audio=str(self.source.backend),
      postprocess=self._postprocess_enabled,
    )
    return True

  def add_segment_listener(self, listener: SegmentCallback) -> None:
    """Receive each accepted segment as soon as it is recognized."""
    self._segment_listeners.append(listener)

  def add_transcript_listener(self, listener: TranscriptCallback) -> None:
    """Receive the full raw transcript when a recording stops."""
    self._transcript_listeners.append(listener)

  def add_cleaned_listener(self, listener: TranscriptCallback) -> None:
    """Receive post-processed text. An empty string means no result."""
    self._cleaned_listeners.append(listener)

  def add_status_listener(self, listener: TranscriptCallback) -> None:
    self._status_listeners.append(listener)

  def toggle(self) -> bool:
    """Start recording if idle, otherwise stop. Returns the new recording state."""
    if self._recording:
      self.stop_recording()
    else:
      self.start_recording()
    return self._recording

  def start_recording(self) -> bool:
    with self._lock:
      if self._recording:
        return True
      if self.windower is None:
        self.logger.error("Session not initialized")
        return False

      self.accumulator.reset()
      self.replay_finished.clear()
      self.windower.start()
      if not self.source.start():
        self.windower.stop()
        self._notify(self._status_listeners, "Failed to start audio capture")
        return False
      self._recording = True

    self._notify(self._status_listeners, "Recording started - speak now")
    return True

  def stop_recording(self) -> str:
    """
    Stop capture, flush recognition and hand the transcript on.

    :returns: The raw transcript of the recording, or "" if nothing was recording.
    """
    with self._lock:
      if not self._recording or self.windower is None:
        return ""
      self.source.stop()
      self.windower.stop()
      self._recording = False
      transcript = self.accumulator.snapshot()

    self._notify(self._status_listeners, "Recording stopped")
    self.logger.info("Recording finished", chars=len(transcript))
    self._notify(self._transcript_listeners, transcript)

    if self._postprocess_enabled and transcript:
      self._notify(self._status_listeners, "Cleaning up transcript")
      self.postprocessor.submit(transcript, self._on_cleaned)

    return transcript

  def shutdown(self) -> None:
    """Stop any recording, cancel post-processing and release every resource."""
    if self._recording:
      self.stop_recording()
    self.postprocessor.cleanup()
    self.source.cleanup()
    self.logger.info("Session shut down")

  def _on_segment(self, segment: str) -> None:
    self._notify(self._segment_listeners, segment)

  def _on_cleaned(self, text: str) -> None:
    self._notify(self._cleaned_listeners, text)

  def _on_replay_complete(self) -> None:
    self.replay_finished.set()
    if self.source.backend == AudioBackend.FILE:
      self._notify(self._status_listeners, "Audio file replay finished")

  def _notify(self, listeners: list[TranscriptCallback], value: str) -> None:
    for listener in listeners:
      try:
        listener(value)
      except Exception:
        self.logger.exception("Error in session listener")
