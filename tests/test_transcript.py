"""Tests for segment filtering and transcript accumulation."""

import threading

import pytest

from murmur.transcript import TranscriptAccumulator, filter_segment, is_discardable_segment


class TestSegmentFilter:
  @pytest.mark.parametrize(
    "text", [None, "", "   ", ".", " . ", "[BLANK_AUDIO]", "\n[BLANK_AUDIO] "]
  )
  def test_discarded_segments(self, text):
    assert is_discardable_segment(text)
    assert filter_segment(text) is None

  def test_speech_is_trimmed(self):
    assert filter_segment("  Hello there.\n") == "Hello there."

  def test_marker_inside_speech_is_kept(self):
    assert filter_segment("so [BLANK_AUDIO] anyway") == "so [BLANK_AUDIO] anyway"


class TestTranscriptAccumulator:
  def test_segments_joined_by_single_space(self):
    accumulator = TranscriptAccumulator()
    accumulator.append("Hello")
    accumulator.append("  world.  ")
    accumulator.append("Again")

    assert accumulator.snapshot() == "Hello world. Again"
    assert accumulator.segment_count == 3

  def test_empty_segments_ignored(self):
    accumulator = TranscriptAccumulator()
    accumulator.append("   ")
    accumulator.append("")

    assert accumulator.snapshot() == ""
    assert accumulator.segment_count == 0

  def test_no_leading_space_on_first_segment(self):
    accumulator = TranscriptAccumulator()
    accumulator.append(" first")

    assert accumulator.snapshot() == "first"
    assert len(accumulator) == 5

  def test_reset(self):
    accumulator = TranscriptAccumulator()
    accumulator.append("something")
    accumulator.reset()

    assert accumulator.snapshot() == ""
    accumulator.append("fresh")
    assert accumulator.snapshot() == "fresh"

  def test_concurrent_appends_keep_every_segment(self):
    accumulator = TranscriptAccumulator()

    def writer(prefix: str):
      for i in range(200):
        accumulator.append(f"{prefix}{i}")

    threads = [threading.Thread(target=writer, args=(p,)) for p in "abcd"]
    for thread in threads:
      thread.start()
    for thread in threads:
      thread.join()

    words = accumulator.snapshot().split(" ")
    assert len(words) == 800
    assert accumulator.segment_count == 800
    assert "  " not in accumulator.snapshot()
