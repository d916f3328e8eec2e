"""
murmur: local push-to-talk dictation.

Captures audio, transcribes it in overlapping windows as you speak, and optionally
rewrites the finished transcript with a local text generator.
"""

from murmur.app import DictationSession
from murmur.audio import AudioSource
from murmur.config import MurmurConfig, load_config_from_file
from murmur.postprocess import PostProcessor
from murmur.streaming import StreamingWindower
from murmur.transcript import TranscriptAccumulator

__version__ = "0.1.0"

__all__ = [
  "AudioSource",
  "DictationSession",
  "MurmurConfig",
  "PostProcessor",
  "StreamingWindower",
  "TranscriptAccumulator",
  "load_config_from_file",
]
