"""
Terminal presentation of a dictation session.
"""

import sys
import threading
from pathlib import Path
from typing import TextIO

from murmur.logs import get_logger

BOLD = "\033[1m"
STATUS = "\033[1;34m"
CLEANED = "\033[1;32m"
RESET = "\033[0m"


class TerminalOutput:
  """
  Prints segments as one continuous paragraph, plus status lines and cleaned text.

  When `transcript_path` is given, everything printed is mirrored there without
  escape codes. The file is truncated by initialize().
  """

  def __init__(
    self,
    stream: TextIO | None = None,
    transcript_path: Path | None = None,
    color: bool | None = None,
  ) -> None:
    self.stream = stream or sys.stdout
    self.transcript_path = transcript_path
    self.color = self.stream.isatty() if color is None else color
    self.logger = get_logger("out")

    self._lock = threading.Lock()
    self._file: TextIO | None = None
    self._mid_line = False

  def initialize(self) -> bool:
    if self.transcript_path is None:
      return True
    try:
      self._file = self.transcript_path.open("w", encoding="utf-8")
    except OSError:
      self.logger.exception("Failed to open transcript file", path=str(self.transcript_path))
      return False
    return True

  def cleanup(self) -> None:
    with self._lock:
      if self._file is not None:
        self._file.close()
        self._file = None

  def _style(self, text: str, style: str) -> str:
    return f"{style}{text}{RESET}" if self.color else text

  def _end_line(self) -> None:
    if self._mid_line:
      self.stream.write("\n")
      self._mid_line = False

  def show_welcome(self, backend: str, postprocess: bool) -> None:
    with self._lock:
      self.stream.write("murmur: local dictation\n")
      self.stream.write(f"Audio: {backend}  Cleanup: {'on' if postprocess else 'off'}\n")
      self.stream.write("\nPress Enter to start/stop recording (Ctrl+C to quit)\n\n")
      self.stream.flush()

  def display_segment(self, segment: str) -> None:
    """Print a segment, continuing the current paragraph."""
    segment = segment.strip()
    if not segment:
      return
    with self._lock:
      self.stream.write(self._style(segment, BOLD) + " ")
      self.stream.flush()
      self._mid_line = True
      if self._file is not None:
        self._file.write(segment + " ")
        self._file.flush()

  def show_status(self, status: str) -> None:
    with self._lock:
      self._end_line()
      self.stream.write(f"{self._style('[STATUS]', STATUS)} {status}\n")
      self.stream.flush()
      if self._file is not None:
        self._file.write(f"\n[STATUS] {status}\n")
        self._file.flush()

  def display_cleaned(self, text: str) -> None:
    """Print the post-processed version of the last recording."""
    with self._lock:
      self._end_line()
      if not text:
        self.stream.write(f"{self._style('[CLEANED]', CLEANED)} (no result)\n")
      else:
        self.stream.write(f"{self._style('[CLEANED]', CLEANED)}\n{text}\n")
      self.stream.flush()
      if self._file is not None and text:
        self._file.write(f"\n[CLEANED]\n{text}\n")
        self._file.flush()
