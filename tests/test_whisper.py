"""Tests for the faster-whisper recognizer adapter, using a stand-in model."""

from types import SimpleNamespace

import numpy as np
import pytest

from murmur.config import RecognizerConfig
from murmur.errors import ConfigurationError, RecognitionError
from murmur.transcription import FasterWhisperRecognizer


class StubModel:
  def __init__(self, texts: list[str], error: Exception | None = None) -> None:
    self.texts = texts
    self.error = error
    self.calls: list[dict] = []

  def transcribe(self, audio, **options):
    self.calls.append({"audio": audio, **options})
    if self.error is not None:
      raise self.error
    segments = (SimpleNamespace(text=text) for text in self.texts)
    return segments, SimpleNamespace(language="en")


class TestFasterWhisperRecognizer:
  def test_joins_segment_texts(self):
    model = StubModel([" Hello there.", "  General Kenobi. ", " "])
    recognizer = FasterWhisperRecognizer(RecognizerConfig(), model=model)

    text = recognizer.recognize(np.zeros(16000, dtype=np.float32), 16000, 1000)

    assert text == "Hello there. General Kenobi."

  def test_decoding_options_come_from_config(self):
    model = StubModel(["ok"])
    config = RecognizerConfig(language="de", beam_size=3, max_new_tokens=64)
    recognizer = FasterWhisperRecognizer(config, model=model)

    recognizer.recognize(np.zeros(1600, dtype=np.float32), 16000, 100)

    (call,) = model.calls
    assert call["language"] == "de"
    assert call["beam_size"] == 3
    assert call["max_new_tokens"] == 64
    assert call["condition_on_previous_text"] is False
    assert call["audio"].dtype == np.float32

  def test_max_new_tokens_omitted_by_default(self):
    model = StubModel(["ok"])
    FasterWhisperRecognizer(RecognizerConfig(), model=model).recognize(
      np.zeros(160, dtype=np.float32), 16000, 10
    )

    assert "max_new_tokens" not in model.calls[0]

  def test_rejects_other_sample_rates(self):
    recognizer = FasterWhisperRecognizer(RecognizerConfig(), model=StubModel(["x"]))

    with pytest.raises(RecognitionError, match="16000 Hz"):
      recognizer.recognize(np.zeros(800, dtype=np.float32), 8000, 100)

  def test_model_failure_becomes_recognition_error(self):
    model = StubModel([], error=RuntimeError("CUDA out of memory"))
    recognizer = FasterWhisperRecognizer(RecognizerConfig(), model=model)

    with pytest.raises(RecognitionError, match="CUDA out of memory"):
      recognizer.recognize(np.zeros(160, dtype=np.float32), 16000, 10)

  def test_missing_local_model_directory(self, tmp_path):
    config = RecognizerConfig(model=str(tmp_path / "models" / "ggml-base"))

    with pytest.raises(ConfigurationError, match="model not found"):
      FasterWhisperRecognizer(config)
