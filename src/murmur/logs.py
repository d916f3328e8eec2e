"""Structured logging for murmur, built on structlog over the stdlib logging tree."""

import logging
import sys
import threading
import time
from typing import Any

import numpy as np
import structlog
from structlog.dev import BRIGHT, DIM, RESET_ALL, Column, ConsoleRenderer, KeyValueColumnFormatter
from structlog.typing import EventDict, Processor, WrappedLogger

_START = time.monotonic()

# Libraries whose INFO chatter would drown out the pipeline's own events
_QUIETED_LOGGERS = ("httpx", "httpcore", "faster_whisper")

# level -> (24-bit color, 4-character tag)
LEVEL_STYLES: dict[str, tuple[int, str]] = {
  "debug": (0x908CAA, "dbug"),
  "info": (0x9CCFD8, "info"),
  "warning": (0xF6C177, "warn"),
  "error": (0xEB6F92, "eror"),
  "exception": (0xEB6F92, "exc!"),
  "critical": (0xEB6F92, "crit"),
}


def hex_to_ansi_fg(hex_color: int) -> str:
  """ANSI 24-bit foreground escape for a 0xRRGGBB color."""
  return f"\x1b[38;2;{(hex_color >> 16) & 0xFF};{(hex_color >> 8) & 0xFF};{hex_color & 0xFF}m"


class FloatPrecisionProcessor:
  """
  Rounds float values, including those nested in lists, dicts and numpy arrays, so
  that audio statistics stay readable on the console.
  """

  def __init__(self, digits: int = 3, np_array_to_list: bool = True):
    self.digits = digits
    self.np_array_to_list = np_array_to_list

  def _round(self, value: Any):
    if isinstance(value, bool):
      return value
    if isinstance(value, float | np.floating):
      return round(float(value), self.digits)
    if self.np_array_to_list and isinstance(value, np.ndarray):
      return self._round(value.tolist())
    if isinstance(value, list):
      return [self._round(item) for item in value]
    if isinstance(value, dict):
      return {k: self._round(v) for k, v in value.items()}
    return value

  def __call__(self, _: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    for key, value in event_dict.items():
      event_dict[key] = self._round(value)
    return event_dict


def _add_thread_name(_logger: WrappedLogger, _method_name: str, event_dict: EventDict) -> EventDict:
  """Record which pipeline thread (capture, windower, postprocess-N) emitted the event."""
  event_dict["thread"] = threading.current_thread().name
  return event_dict


def _relative_time(_logger: WrappedLogger, _method_name: str, event_dict: EventDict) -> EventDict:
  """Stamp events with +mm:ss.mmm since the process started."""
  elapsed = time.monotonic() - _START
  minutes, seconds = divmod(elapsed, 60)
  prefix = f"{int(minutes):02d}:" if minutes else ""
  event_dict["timestamp"] = f"+{prefix}{seconds:06.3f}"
  return event_dict


def _compact_level(_logger: WrappedLogger, _method_name: str, event_dict: EventDict) -> EventDict:
  style = LEVEL_STYLES.get(event_dict.get("level", ""))
  if style is not None:
    color, tag = style
    event_dict["level"] = f"[{hex_to_ansi_fg(color)}{tag}{RESET_ALL}]"
  return event_dict


def _column(value_style: str, **kwargs: Any) -> KeyValueColumnFormatter:
  return KeyValueColumnFormatter(
    key_style=None, value_style=value_style, reset_style=RESET_ALL, value_repr=str, **kwargs
  )


def _console_renderer(colors: bool) -> ConsoleRenderer:
  """Columns: timestamp, level tag, [logger], [thread], event, then key=value pairs."""
  remaining = KeyValueColumnFormatter(
    key_style=hex_to_ansi_fg(0x6E6A86),
    value_style=hex_to_ansi_fg(0xF6C177),
    reset_style=RESET_ALL,
    value_repr=str,
  )
  return ConsoleRenderer(
    colors=colors,
    columns=[
      Column("", remaining),
      Column("timestamp", _column(DIM)),
      Column("level", _column("")),
      Column("logger", _column(hex_to_ansi_fg(0x7D6B95), prefix="[", postfix="]")),
      Column("thread", _column(DIM, prefix="<", postfix=">")),
      Column("event", _column(BRIGHT, width=30)),
    ],
  )


def setup_logging(
  level: str = "INFO", json_output: bool = False, correlation_id: str | None = None
) -> None:
  """
  Route all logging, ours and third-party, through one structlog formatter on stderr.

  stdout is reserved for the transcript, so logs never interleave with dictated text
  when output is piped.
  """
  shared_processors: list[Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    _add_thread_name,
    FloatPrecisionProcessor(digits=3),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
  ]

  structlog.contextvars.clear_contextvars()
  if correlation_id:
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

  if json_output:
    shared_processors.append(structlog.processors.TimeStamper(fmt="iso"))
    renderer: Processor = structlog.processors.JSONRenderer()
  else:
    colors = sys.stderr.isatty()
    if colors:
      shared_processors.append(_compact_level)
    shared_processors.append(_relative_time)
    renderer = _console_renderer(colors)

  structlog.configure(
    processors=[structlog.stdlib.filter_by_level]
    + shared_processors
    + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
  )

  handler = logging.StreamHandler(sys.stderr)
  handler.setFormatter(
    structlog.stdlib.ProcessorFormatter(
      foreign_pre_chain=shared_processors,
      processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )
  )
  root_logger = logging.getLogger()
  root_logger.handlers.clear()
  root_logger.addHandler(handler)
  root_logger.setLevel(level)

  for name in _QUIETED_LOGGERS:
    library_logger = logging.getLogger(name)
    library_logger.handlers.clear()
    library_logger.setLevel(logging.WARNING)
    library_logger.propagate = True


def get_logger(name: str | None = None, **initial_values: Any) -> structlog.stdlib.BoundLogger:
  """Get a structured logger, optionally pre-bound with context values."""
  return structlog.get_logger(name, **initial_values)
