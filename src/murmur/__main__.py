import argparse
import dataclasses
import os
import sys
import threading
from pathlib import Path

from pydantic import ValidationError

from .app import DictationSession
from .config import (
  AudioBackend,
  MurmurConfig,
  get_env_bool,
  get_env_float,
  get_env_int,
  load_config_from_file,
)
from .logs import get_logger, setup_logging
from .output import TerminalOutput
from .postprocess import CompletionServerGenerator
from .transcription import FasterWhisperRecognizer


def build_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(
    prog="murmur", description="Local push-to-talk dictation with transcript cleanup"
  )
  parser.add_argument(
    "--config",
    type=str,
    default=os.getenv("MURMUR_CONFIG"),
    help="Path to the YAML configuration file. (Env: MURMUR_CONFIG)",
  )
  parser.add_argument(
    "--backend",
    "-b",
    type=str,
    choices=[b.value for b in AudioBackend],
    default=os.getenv("MURMUR_AUDIO_BACKEND"),
    help="Audio backend, overriding the config file. (Env: MURMUR_AUDIO_BACKEND)",
  )
  parser.add_argument(
    "--file",
    "-f",
    type=str,
    default=os.getenv("MURMUR_AUDIO_FILE"),
    help="WAV file to replay instead of capturing. Implies --backend file. "
    "(Env: MURMUR_AUDIO_FILE)",
  )
  parser.add_argument(
    "--model",
    "-m",
    type=str,
    default=os.getenv("MURMUR_MODEL"),
    help="Recognizer model size or local model directory. (Env: MURMUR_MODEL)",
  )
  parser.add_argument(
    "--threads",
    type=int,
    default=get_env_int("MURMUR_THREADS", None),
    help="CPU threads used by the recognizer. (Env: MURMUR_THREADS)",
  )
  parser.add_argument(
    "--chunk-duration",
    type=float,
    default=get_env_float("MURMUR_CHUNK_DURATION", None),
    help="Window length in seconds. (Env: MURMUR_CHUNK_DURATION)",
  )
  parser.add_argument(
    "--no-postprocess",
    action="store_true",
    default=get_env_bool("MURMUR_NO_POSTPROCESS", False),
    help="Skip transcript cleanup. (Env: MURMUR_NO_POSTPROCESS)",
  )
  parser.add_argument(
    "--transcript",
    type=str,
    default=None,
    help="Also write the session transcript to this file.",
  )
  parser.add_argument(
    "--once",
    action="store_true",
    help="Transcribe the --file replay from start to end, then exit.",
  )
  parser.add_argument(
    "--json_logs",
    action="store_true",
    default=get_env_bool("JSON_LOGS", False),
    help="Output logs in JSON format. (Env: JSON_LOGS)",
  )
  parser.add_argument(
    "--correlation_id",
    type=str,
    default=os.getenv("CORRELATION_ID"),
    help="Correlation ID for log tracing. (Env: CORRELATION_ID)",
  )
  return parser


def resolve_config(args: argparse.Namespace) -> MurmurConfig:
  """Load the config file, if any, and apply command line overrides."""
  config = load_config_from_file(args.config) if args.config else MurmurConfig()

  if args.file:
    config.audio.file_path = Path(args.file)
    config.audio.backend = AudioBackend.FILE
  if args.backend:
    config.audio.backend = AudioBackend(args.backend)
  if args.model:
    config.recognizer.model = args.model
  if args.threads is not None:
    config.recognizer.threads = args.threads
  if args.chunk_duration is not None:
    config.window = dataclasses.replace(config.window, chunk_duration=args.chunk_duration)
  if args.no_postprocess:
    config.generator.enabled = False
  if args.once:
    config.audio.realtime_replay = False

  return config


def run_once(session: DictationSession, cleaned: threading.Event) -> int:
  """Replay the configured file to completion and wait for its cleanup."""
  if not session.start_recording():
    return 1
  while not session.replay_finished.wait(0.1):
    if not session.source.is_active:
      break

  transcript = session.stop_recording()
  if session.postprocess_enabled and transcript:
    cleaned.wait()
  return 0


def run_console(session: DictationSession) -> int:
  """Toggle recording on every Enter until stdin closes."""
  for _ in sys.stdin:
    session.toggle()
  return 0


def main() -> int:
  args = build_parser().parse_args()

  log_level = os.getenv("LOG_LEVEL", "INFO").upper()
  setup_logging(level=log_level, json_output=args.json_logs, correlation_id=args.correlation_id)
  logger = get_logger("main")

  try:
    config = resolve_config(args)
  except (ValueError, ValidationError) as e:
    logger.error("Invalid configuration", error=str(e))
    return 1

  if args.once and config.audio.backend != AudioBackend.FILE:
    logger.error("--once requires an audio file (--file)")
    return 1

  output = TerminalOutput(transcript_path=Path(args.transcript) if args.transcript else None)
  if not output.initialize():
    return 1

  session = DictationSession(
    config,
    recognizer_factory=lambda: FasterWhisperRecognizer.from_config(config.recognizer),
    generator_factory=lambda: CompletionServerGenerator.from_config(config.generator),
  )

  cleaned = threading.Event()

  def on_cleaned(text: str) -> None:
    output.display_cleaned(text)
    cleaned.set()

  session.add_segment_listener(output.display_segment)
  session.add_status_listener(output.show_status)
  session.add_cleaned_listener(on_cleaned)

  try:
    if not session.initialize():
      logger.error("Failed to initialize dictation session")
      return 1

    if args.once:
      return run_once(session, cleaned)

    output.show_welcome(str(session.source.backend), session.postprocess_enabled)
    return run_console(session)
  except KeyboardInterrupt:
    output.show_status("Exiting")
    return 0
  finally:
    session.shutdown()
    output.cleanup()


if __name__ == "__main__":
  sys.exit(main())
