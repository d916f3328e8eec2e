"""
Constants for murmur.

These values are fixed for the whole pipeline and are not configurable.
"""

SAMPLE_RATE = 16000
"""Process-wide sample rate in Hz. Every frame, window and recognizer call uses it."""

FRAME_SAMPLES = 1024
"""Default number of samples delivered per audio source callback."""

QUEUE_TIMEOUT = 0.1
"""Seconds the windowing thread waits on the frame queue before re-checking state."""

BLANK_AUDIO_MARKER = "[BLANK_AUDIO]"
"""Sentinel emitted by whisper-family recognizers for windows without speech."""

DISCARDED_SEGMENTS = frozenset({"", ".", BLANK_AUDIO_MARKER})
"""Recognizer outputs that never reach the transcript."""
