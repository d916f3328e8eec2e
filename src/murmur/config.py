import os
from enum import StrEnum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator, validate_call
from pydantic.dataclasses import dataclass
from pydantic.types import FilePath

from murmur.constants import FRAME_SAMPLES, QUEUE_TIMEOUT, SAMPLE_RATE
from murmur.logs import get_logger

logger = get_logger("cfg")


class AudioBackend(StrEnum):
  """Where audio frames come from."""

  AUTO = "auto"
  """Replay `file_path` when set, otherwise try the capture device."""

  DEVICE = "device"
  FILE = "file"
  SYNTHETIC = "synthetic"


@dataclass
class WindowConfig:
  """Geometry of the sliding window cut from the incoming audio."""

  sample_rate: int = Field(default=SAMPLE_RATE, gt=0)
  """Audio sample rate in Hz."""

  chunk_duration: float = Field(default=30.0, gt=0.0)
  """Length of every window handed to the recognizer, in seconds."""

  overlap_duration: float = Field(default=5.0, ge=0.0)
  """Trailing audio re-included at the start of the next window, in seconds."""

  queue_timeout: float = Field(default=QUEUE_TIMEOUT, gt=0.0)
  """Longest time the windowing thread waits for new frames before re-checking state."""

  @model_validator(mode="after")
  def validate_overlap(self) -> "WindowConfig":
    """Validate that the overlap is strictly shorter than the window."""
    if self.overlap_duration >= self.chunk_duration:
      raise ValueError(
        f"overlap_duration ({self.overlap_duration}s) must be less than "
        f"chunk_duration ({self.chunk_duration}s)"
      )
    if self.overlap_samples >= self.chunk_samples:
      raise ValueError(
        f"overlap ({self.overlap_samples} samples) must be less than "
        f"chunk ({self.chunk_samples} samples) at {self.sample_rate}Hz"
      )
    return self

  @property
  def chunk_samples(self) -> int:
    return int(self.chunk_duration * self.sample_rate)

  @property
  def overlap_samples(self) -> int:
    return int(self.overlap_duration * self.sample_rate)

  @property
  def step_samples(self) -> int:
    """Samples discarded from the head of the buffer after each window."""
    return self.chunk_samples - self.overlap_samples


class AudioConfig(BaseModel):
  """Configuration for the audio source."""

  backend: AudioBackend = AudioBackend.AUTO
  """Backend to acquire. Unreachable devices fall back to the synthetic generator."""

  device: int | str | None = None
  """sounddevice input device index or name. None selects the system default."""

  file_path: Path | None = None
  """WAV file to replay when the backend is `file` (or `auto`)."""

  frame_samples: int = Field(default=FRAME_SAMPLES, gt=0)
  """Samples per delivered frame."""

  realtime_replay: bool = True
  """Pace file and synthetic playback at the pipeline's real-time rate."""

  synthetic_seed: int = 1234
  """Seed for the synthetic generator's noise."""

  synthetic_frequency: float = Field(default=440.0, gt=0.0)
  """Tone frequency of the synthetic generator in Hz."""


class RecognizerConfig(BaseModel):
  """Configuration for the speech recognizer."""

  model: str = "base.en"
  """faster-whisper model size name, HuggingFace repo or path to a local CTranslate2 model."""

  device: str = "auto"
  """Inference device: auto, cpu or cuda."""

  compute_type: str = "int8"
  """CTranslate2 compute type."""

  language: str = "en"
  """Language of the speech."""

  threads: int = Field(default=8, gt=0)
  """CPU threads used for inference."""

  beam_size: int = Field(default=1, gt=0)
  """Beam size. 1 means greedy decoding."""

  max_new_tokens: int | None = Field(default=None, gt=0)
  """Upper bound on tokens decoded per window. None leaves it to the model."""

  download_root: Path | None = None
  """Directory where downloaded models are cached."""


class GeneratorConfig(BaseModel):
  """Configuration for the post-processing text generator."""

  enabled: bool = True
  """Whether the transcript is rewritten when recording stops."""

  base_url: str = "http://127.0.0.1:8080"
  """Root URL of an OpenAI-compatible completion server."""

  model: str | None = None
  """Model name sent with each request. Single-model servers ignore it."""

  max_tokens: int = Field(default=1024, gt=0)
  """Maximum number of tokens generated per job."""

  top_k: int = Field(default=40, gt=0)
  top_p: float = Field(default=0.8, gt=0.0, le=1.0)
  temperature: float = Field(default=0.3, ge=0.0)
  seed: int = 1234

  timeout: float = Field(default=120.0, gt=0.0)
  """Seconds allowed for a whole generation request."""

  connect_timeout: float = Field(default=5.0, gt=0.0)
  """Seconds allowed to reach the server."""


class MurmurConfig(BaseModel):
  """Top-level murmur configuration."""

  audio: AudioConfig = Field(default_factory=AudioConfig)
  window: WindowConfig = Field(default_factory=WindowConfig)
  recognizer: RecognizerConfig = Field(default_factory=RecognizerConfig)
  generator: GeneratorConfig = Field(default_factory=GeneratorConfig)

  def pretty_print(self) -> None:
    """Log every configuration property, including defaults, at INFO level."""
    logger.info("=" * 60)
    logger.info("MURMUR CONFIGURATION")
    logger.info("=" * 60)

    logger.info("AUDIO SETTINGS:")
    logger.info(f"  Backend: {self.audio.backend}")
    logger.info(f"  Device: {self.audio.device}")
    logger.info(f"  File: {self.audio.file_path}")
    logger.info(f"  Frame Samples: {self.audio.frame_samples}")
    logger.info(f"  Realtime Replay: {self.audio.realtime_replay}")

    logger.info("WINDOW SETTINGS:")
    logger.info(f"  Sample Rate: {self.window.sample_rate}")
    logger.info(f"  Chunk Duration: {self.window.chunk_duration}s")
    logger.info(f"  Overlap Duration: {self.window.overlap_duration}s")
    logger.info(f"  Queue Timeout: {self.window.queue_timeout}s")

    logger.info("RECOGNIZER SETTINGS:")
    logger.info(f"  Model: {self.recognizer.model}")
    logger.info(f"  Device: {self.recognizer.device}")
    logger.info(f"  Compute Type: {self.recognizer.compute_type}")
    logger.info(f"  Language: {self.recognizer.language}")
    logger.info(f"  Threads: {self.recognizer.threads}")

    logger.info("GENERATOR SETTINGS:")
    logger.info(f"  Enabled: {self.generator.enabled}")
    logger.info(f"  Base URL: {self.generator.base_url}")
    logger.info(f"  Model: {self.generator.model}")
    logger.info(f"  Max Tokens: {self.generator.max_tokens}")
    logger.info(
      f"  Sampling: top_k={self.generator.top_k} top_p={self.generator.top_p} "
      f"temperature={self.generator.temperature} seed={self.generator.seed}"
    )

    logger.info("=" * 60)


@validate_call
def load_config_from_file(config_path: FilePath) -> MurmurConfig:
  """Load and validate murmur configuration from a YAML file."""

  logger.info("Loading murmur configuration", path=str(config_path))

  try:
    with open(config_path, "r", encoding="utf-8") as file:
      config_data = yaml.safe_load(file)
  except yaml.YAMLError as e:
    raise ValueError(f"Invalid YAML in configuration file: {e}") from e
  except OSError as e:
    raise ValueError(f"Error reading configuration file: {e}") from e

  if config_data is None:
    raise ValueError("Configuration file is empty")

  if not isinstance(config_data, dict):
    raise ValueError("Configuration file must contain a YAML dictionary")

  config = MurmurConfig.model_validate(config_data)
  config.pretty_print()

  return config


def get_env_float(key: str, default: float | None) -> float | None:
  """Get a float from an environment variable."""
  value = os.getenv(key)
  return default if value is None else float(value)


def get_env_int(key: str, default: int | None) -> int | None:
  """Get an int from an environment variable."""
  value = os.getenv(key)
  return default if value is None else int(value)


def get_env_bool(key: str, default: bool) -> bool:
  """Get a bool from an environment variable."""
  return os.getenv(key, str(default)).lower() in ("true", "1", "yes", "on")
