"""
Audio acquisition: capture devices, WAV file replay and synthetic audio.
"""

from .source import AudioSource, CompletionCallback, FrameCallback
from .wav import WavInfo, WavReader, decode_first_channel, parse_header, probe

__all__ = [
  "AudioSource",
  "CompletionCallback",
  "FrameCallback",
  "WavInfo",
  "WavReader",
  "decode_first_channel",
  "parse_header",
  "probe",
]
