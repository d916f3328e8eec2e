from typing import NamedTuple

from rich.pretty import pretty_repr


class Pretty(NamedTuple):
  value: object

  def __str__(self) -> str:
    return pretty_repr(self.value)


class Unit(NamedTuple):
  value: float


class Seconds(Unit):
  def __str__(self) -> str:
    return f"{self.value:.3f}s"


class Milliseconds(Unit):
  def __str__(self) -> str:
    return f"{self.value:.0f}ms"


class Samples(Unit):
  def __str__(self) -> str:
    return f"{int(self.value)} samples"


def samples_to_seconds(samples: int, sample_rate: int) -> Seconds:
  return Seconds(samples / sample_rate)


def samples_to_ms(samples: int, sample_rate: int) -> int:
  """Whole milliseconds covered by `samples` at `sample_rate`."""
  return (samples * 1000) // sample_rate
