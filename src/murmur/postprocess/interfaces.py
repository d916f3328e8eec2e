"""
Protocol interface for the text generator consumed by the post-processor.
"""

import threading
from typing import Protocol


class TextGenerator(Protocol):
  """
  Protocol for generative text models.

  Implementations produce a bounded-length, deterministic completion for a prompt
  using fixed sampling parameters.
  """

  def generate(self, prompt: str, cancel_event: threading.Event | None = None) -> str:
    """
    Complete `prompt`.

    :param prompt: Full instruction prompt.
    :param cancel_event: When set, generation should stop as soon as possible. Text
      produced so far may be returned; the caller discards it.
    :returns: Generated text.
    :raises Exception: Any failure; the caller logs it and reports an empty result.
    """
    ...

  def close(self) -> None:
    """Release any resources held by the generator."""
    ...
