"""Tests for the configuration module."""

from pathlib import Path

import pytest

from murmur.config import (
  AudioBackend,
  AudioConfig,
  GeneratorConfig,
  MurmurConfig,
  RecognizerConfig,
  WindowConfig,
  get_env_bool,
  get_env_float,
  get_env_int,
  load_config_from_file,
)


@pytest.fixture
def fake_filesystem(fs):
  """Variable name 'fs' causes a pylint warning. Provide a longer name
  acceptable to pylint for use in tests.
  """
  yield fs


class TestWindowConfig:
  """Test WindowConfig validation and derived sample counts."""

  def test_window_config_defaults(self):
    config = WindowConfig()

    assert config.sample_rate == 16000
    assert config.chunk_duration == 30.0
    assert config.overlap_duration == 5.0
    assert config.queue_timeout == 0.1
    assert config.chunk_samples == 480_000
    assert config.overlap_samples == 80_000
    assert config.step_samples == 400_000

  def test_overlap_must_be_shorter_than_chunk(self):
    config = WindowConfig(chunk_duration=10.0, overlap_duration=9.5)
    assert config.step_samples == 8000

    with pytest.raises(ValueError, match="overlap_duration.*must be less than.*chunk_duration"):
      WindowConfig(chunk_duration=5.0, overlap_duration=5.0)

    with pytest.raises(ValueError, match="overlap_duration.*must be less than.*chunk_duration"):
      WindowConfig(chunk_duration=5.0, overlap_duration=8.0)

  def test_zero_overlap_is_allowed(self):
    config = WindowConfig(chunk_duration=2.0, overlap_duration=0.0)
    assert config.step_samples == config.chunk_samples

  def test_positive_values(self):
    with pytest.raises(ValueError):
      WindowConfig(sample_rate=0)

    with pytest.raises(ValueError):
      WindowConfig(chunk_duration=-1.0)

    with pytest.raises(ValueError):
      WindowConfig(overlap_duration=-0.5)


class TestComponentConfigs:
  """Test defaults of the per-component configuration models."""

  def test_audio_config_defaults(self):
    config = AudioConfig()

    assert config.backend == AudioBackend.AUTO
    assert config.device is None
    assert config.file_path is None
    assert config.frame_samples == 1024
    assert config.realtime_replay is True

  def test_audio_backend_from_string(self):
    config = AudioConfig.model_validate({"backend": "synthetic"})
    assert config.backend == AudioBackend.SYNTHETIC

    with pytest.raises(ValueError):
      AudioConfig.model_validate({"backend": "tape"})

  def test_recognizer_config_defaults(self):
    config = RecognizerConfig()

    assert config.model == "base.en"
    assert config.language == "en"
    assert config.threads == 8
    assert config.beam_size == 1
    assert config.max_new_tokens is None

  def test_generator_config_sampling_defaults(self):
    config = GeneratorConfig()

    assert config.enabled is True
    assert config.max_tokens == 1024
    assert config.top_k == 40
    assert config.top_p == 0.8
    assert config.temperature == 0.3
    assert config.seed == 1234

  def test_generator_top_p_bounds(self):
    with pytest.raises(ValueError):
      GeneratorConfig(top_p=1.5)

  def test_murmur_config_nests_defaults(self):
    config = MurmurConfig()

    assert isinstance(config.audio, AudioConfig)
    assert isinstance(config.window, WindowConfig)
    assert isinstance(config.recognizer, RecognizerConfig)
    assert isinstance(config.generator, GeneratorConfig)


class TestConfigFileLoading:
  """Test configuration file loading and validation."""

  def test_load_valid_config_file(self, fake_filesystem):
    config_data = """
audio:
  backend: file
  file_path: /recordings/memo.wav
  frame_samples: 512

window:
  chunk_duration: 20.0
  overlap_duration: 2.5

recognizer:
  model: small.en
  threads: 4

generator:
  base_url: http://localhost:9000
  max_tokens: 256
"""
    fake_filesystem.create_file("/test/config.yaml", contents=config_data)
    config = load_config_from_file(Path("/test/config.yaml"))

    assert config.audio.backend == AudioBackend.FILE
    assert config.audio.file_path == Path("/recordings/memo.wav")
    assert config.audio.frame_samples == 512
    assert config.window.chunk_samples == 320_000
    assert config.window.overlap_samples == 40_000
    assert config.recognizer.model == "small.en"
    assert config.recognizer.threads == 4
    assert config.generator.base_url == "http://localhost:9000"
    assert config.generator.max_tokens == 256
    assert config.generator.top_k == 40

  def test_load_empty_config_file(self, fake_filesystem):
    fake_filesystem.create_file("/test/empty.yaml", contents="")

    with pytest.raises(ValueError, match="Configuration file is empty"):
      load_config_from_file(Path("/test/empty.yaml"))

  def test_load_invalid_yaml(self, fake_filesystem):
    fake_filesystem.create_file("/test/invalid.yaml", contents="invalid: yaml: content: [")

    with pytest.raises(ValueError, match="Invalid YAML"):
      load_config_from_file(Path("/test/invalid.yaml"))

  def test_load_non_mapping_yaml(self, fake_filesystem):
    fake_filesystem.create_file("/test/list.yaml", contents="- one\n- two\n")

    with pytest.raises(ValueError, match="must contain a YAML dictionary"):
      load_config_from_file(Path("/test/list.yaml"))

  def test_load_nonexistent_file(self, fake_filesystem):
    with pytest.raises(ValueError, match="Path does not point to a file"):
      load_config_from_file(Path("/nonexistent/file.yaml"))

  def test_load_config_with_validation_errors(self, fake_filesystem):
    config_data = """
window:
  chunk_duration: 4.0
  overlap_duration: 6.0
"""
    fake_filesystem.create_file("/test/bad.yaml", contents=config_data)

    with pytest.raises(ValueError, match="overlap_duration"):
      load_config_from_file(Path("/test/bad.yaml"))


class TestEnvHelpers:
  def test_defaults_when_unset(self, monkeypatch):
    monkeypatch.delenv("MURMUR_TEST_VALUE", raising=False)

    assert get_env_bool("MURMUR_TEST_VALUE", False) is False

  def test_values_from_environment(self, monkeypatch):
    for truthy in ("true", "1", "YES", "on"):
      monkeypatch.setenv("MURMUR_TEST_VALUE", truthy)
      assert get_env_bool("MURMUR_TEST_VALUE", False) is True

    monkeypatch.setenv("MURMUR_TEST_VALUE", "off")
    assert get_env_bool("MURMUR_TEST_VALUE", True) is False

  def test_numeric_values_from_environment(self, monkeypatch):
    monkeypatch.setenv("MURMUR_TEST_FLOAT", "12.5")
    monkeypatch.setenv("MURMUR_TEST_INT", "4")

    assert get_env_float("MURMUR_TEST_FLOAT", 1.0) == 12.5
    assert get_env_int("MURMUR_TEST_INT", 8) == 4

  def test_numeric_defaults_when_unset(self, monkeypatch):
    monkeypatch.delenv("MURMUR_TEST_FLOAT", raising=False)
    monkeypatch.delenv("MURMUR_TEST_INT", raising=False)

    assert get_env_float("MURMUR_TEST_FLOAT", 1.0) == 1.0
    assert get_env_int("MURMUR_TEST_INT", None) is None

  def test_malformed_number_raises(self, monkeypatch):
    monkeypatch.setenv("MURMUR_TEST_INT", "four")

    with pytest.raises(ValueError):
      get_env_int("MURMUR_TEST_INT", 8)
