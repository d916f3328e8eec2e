"""
Speech recognizer backed by faster-whisper.
"""

import os
import time
from typing import Any

import numpy as np

from murmur.config import RecognizerConfig
from murmur.constants import SAMPLE_RATE
from murmur.errors import ConfigurationError, RecognitionError
from murmur.format import Milliseconds, Seconds
from murmur.logs import get_logger

MODEL_SIZES = frozenset(
  {
    "tiny",
    "tiny.en",
    "base",
    "base.en",
    "small",
    "small.en",
    "medium",
    "medium.en",
    "large-v1",
    "large-v2",
    "large-v3",
    "large",
    "distil-large-v2",
    "distil-large-v3",
    "distil-medium.en",
    "distil-small.en",
    "turbo",
    "large-v3-turbo",
  }
)


def _looks_like_path(model_ref: str) -> bool:
  return os.sep in model_ref or model_ref.startswith((".", "~"))


class FasterWhisperRecognizer:
  """
  Transcribes one window of 16 kHz mono audio into a single line of text.

  Decoding is deterministic: greedy by default, no conditioning on earlier windows,
  timestamps suppressed. Segment texts returned by the model are joined with spaces.
  """

  def __init__(self, config: RecognizerConfig, model: Any | None = None) -> None:
    """
    :param config: Model reference and decoding options.
    :param model: Pre-built model exposing faster-whisper's `transcribe()`. When omitted
      the model named by `config.model` is loaded.
    :raises ConfigurationError: If `config.model` names a local path that does not exist.
    :raises RecognitionError: If the model fails to load.
    """
    self.config = config
    self.logger = get_logger("asr")
    self.model = model if model is not None else self._load_model()

  @classmethod
  def from_config(cls, config: RecognizerConfig) -> "FasterWhisperRecognizer":
    return cls(config)

  def _load_model(self) -> Any:
    model_ref = self.config.model
    if model_ref not in MODEL_SIZES and _looks_like_path(model_ref):
      model_ref = os.path.expanduser(model_ref)
      if not os.path.isdir(model_ref):
        raise ConfigurationError(f"Recognizer model not found: {model_ref}")

    from faster_whisper import WhisperModel

    self.logger.info(
      "Loading model",
      model=model_ref,
      device=self.config.device,
      compute_type=self.config.compute_type,
    )
    start = time.monotonic()
    try:
      model = WhisperModel(
        model_ref,
        device=self.config.device,
        compute_type=self.config.compute_type,
        cpu_threads=self.config.threads,
        download_root=str(self.config.download_root) if self.config.download_root else None,
      )
    except Exception as e:
      raise RecognitionError(f"Failed to load recognizer model {model_ref}: {e}") from e

    self.logger.info("Model loaded", elapsed=Seconds(time.monotonic() - start))
    return model

  def recognize(self, samples: np.ndarray, sample_rate: int, duration_ms: int) -> str:
    """
    Transcribe a window.

    :param samples: float32 mono samples in [-1.0, 1.0].
    :param sample_rate: Must be 16000; audio is never resampled.
    :param duration_ms: Window length, used for logging and decode bounds.
    :returns: The joined segment texts, possibly empty.
    :raises RecognitionError: On a sample rate mismatch or a decoding failure.
    """
    if sample_rate != SAMPLE_RATE:
      raise RecognitionError(f"Recognizer requires {SAMPLE_RATE} Hz audio, got {sample_rate} Hz")

    options: dict[str, Any] = {
      "language": self.config.language,
      "beam_size": self.config.beam_size,
      "condition_on_previous_text": False,
      "without_timestamps": True,
      "vad_filter": False,
    }
    if self.config.max_new_tokens is not None:
      options["max_new_tokens"] = self.config.max_new_tokens

    self.logger.debug("Transcribing window", duration=Milliseconds(duration_ms))
    try:
      segments, _info = self.model.transcribe(np.asarray(samples, dtype=np.float32), **options)
      texts = [segment.text.strip() for segment in segments]
    except Exception as e:
      raise RecognitionError(f"Transcription failed: {e}") from e

    return " ".join(text for text in texts if text)
