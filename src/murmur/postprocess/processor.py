"""
Single-flight post-processing of finished transcripts through a text generator.
"""

import itertools
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

from murmur.format import Seconds
from murmur.logs import get_logger
from murmur.postprocess.interfaces import TextGenerator
from murmur.postprocess.prompt import build_cleanup_prompt

ResultCallback = Callable[[str], None]
"""Receives the cleaned text. An empty string means rejection, failure or cancellation."""

GeneratorFactory = Callable[[], TextGenerator]


class JobState(StrEnum):
  """Lifecycle of the post-processor's single job slot."""

  IDLE = "idle"
  RUNNING = "running"
  CANCELLED = "cancelled"


@dataclass
class PostProcessingJob:
  """The one live unit of post-processing work."""

  id: int
  text: str
  callback: ResultCallback | None
  cancelled: threading.Event = field(default_factory=threading.Event)
  done: threading.Event = field(default_factory=threading.Event)
  """Set once the job's result has been delivered."""

  worker: threading.Thread | None = None
  """Worker thread started by submit(). None for process_text() jobs."""

  caller: threading.Thread | None = None
  """Thread running a process_text() job."""


class PostProcessor:
  """
  Rewrites transcripts through a text generator, one job at a time.

  A job is started by submit() on its own worker thread. While a job is running every
  further submission is rejected immediately with an empty result; nothing is queued.

  State machine:
    IDLE -> RUNNING -> IDLE      on completion, success or failure
    RUNNING -> CANCELLED -> IDLE on cancel()
  """

  def __init__(self) -> None:
    self.logger = get_logger("post")
    self._generator: TextGenerator | None = None
    self._lock = threading.Lock()
    self._state = JobState.IDLE
    self._job: PostProcessingJob | None = None
    self._job_ids = itertools.count(1)

  def initialize(self, generator_factory: GeneratorFactory) -> bool:
    """
    Construct the backing generator.

    :returns: False if construction failed; the processor then rejects every job.
    """
    try:
      generator = generator_factory()
    except Exception:
      self.logger.exception("Failed to initialize text generator")
      return False

    with self._lock:
      self._generator = generator

    self.logger.info("Post-processor initialized", generator=type(generator).__name__)
    return True

  @property
  def is_initialized(self) -> bool:
    return self._generator is not None

  @property
  def state(self) -> JobState:
    return self._state

  def is_busy(self) -> bool:
    """Non-blocking check for a job in flight."""
    return self._state is not JobState.IDLE

  def submit(self, text: str, callback: ResultCallback | None) -> bool:
    """
    Start cleaning `text` on a worker thread.

    :returns: True if the job was started. False if it was rejected, in which case
      `callback("")` has already been invoked on the calling thread.
    """
    with self._lock:
      job = self._claim(text, callback)
      if job is not None:
        job.worker = threading.Thread(
          target=self._worker, args=(job,), name=f"postprocess-{job.id}", daemon=True
        )
        job.worker.start()

    if job is None:
      self._deliver(callback, "")
      return False

    self.logger.info("Post-processing job started", job=job.id, chars=len(text))
    return True

  def process_text(self, text: str) -> str:
    """
    Clean `text` on the calling thread.

    :returns: The cleaned text, or an empty string if busy, uninitialized or failed.
    """
    with self._lock:
      job = self._claim(text, None)
      if job is not None:
        job.caller = threading.current_thread()

    if job is None:
      return ""

    try:
      result = self._run_generation(job)
    finally:
      self._release(job)
      job.done.set()
    return result

  def cancel(self) -> None:
    """
    Cancel the running job and wait until it has finished.

    Intended for teardown. The job's callback receives an empty string.
    """
    with self._lock:
      job = self._job
      if job is None or self._state is JobState.IDLE:
        return
      self._state = JobState.CANCELLED
      job.cancelled.set()

    self.logger.info("Cancelling post-processing job", job=job.id)
    runner = job.worker or job.caller
    if runner is not threading.current_thread():
      job.done.wait()
      if job.worker is not None:
        job.worker.join()

    with self._lock:
      if self._job is job:
        self._job = None
        self._state = JobState.IDLE

  def cleanup(self) -> None:
    """Cancel any running job and release the generator."""
    self.cancel()
    with self._lock:
      generator = self._generator
      self._generator = None
    if generator is not None:
      try:
        generator.close()
      except Exception:
        self.logger.exception("Failed to close text generator")

  def _claim(self, text: str, callback: ResultCallback | None) -> PostProcessingJob | None:
    """Take the job slot. Caller must hold the lock."""
    if self._generator is None:
      self.logger.warning("Post-processor not initialized, rejecting job")
      return None
    if self._state is not JobState.IDLE:
      self.logger.warning("Post-processor busy, rejecting job", state=str(self._state))
      return None

    job = PostProcessingJob(id=next(self._job_ids), text=text, callback=callback)
    self._job = job
    self._state = JobState.RUNNING
    return job

  def _release(self, job: PostProcessingJob) -> None:
    """Return to IDLE after a normal finish. A cancelled job is released by cancel()."""
    with self._lock:
      if self._job is job and self._state is JobState.RUNNING:
        self._job = None
        self._state = JobState.IDLE

  def _worker(self, job: PostProcessingJob) -> None:
    try:
      result = self._run_generation(job)
      self._release(job)
      self._deliver(job.callback, result)
    finally:
      job.done.set()

  def _run_generation(self, job: PostProcessingJob) -> str:
    generator = self._generator
    if generator is None or job.cancelled.is_set():
      return ""
    if not job.text.strip():
      return ""

    prompt = build_cleanup_prompt(job.text)
    start = time.monotonic()
    try:
      raw = generator.generate(prompt, cancel_event=job.cancelled)
    except Exception:
      self.logger.exception("Text generation failed", job=job.id)
      return ""

    if job.cancelled.is_set():
      self.logger.info("Post-processing job cancelled", job=job.id)
      return ""

    result = raw.strip()
    self.logger.info(
      "Post-processing job finished",
      job=job.id,
      elapsed=Seconds(time.monotonic() - start),
      chars_in=len(job.text),
      chars_out=len(result),
    )
    return result

  def _deliver(self, callback: ResultCallback | None, result: str) -> None:
    if callback is None:
      return
    try:
      callback(result)
    except Exception:
      self.logger.exception("Error in post-processing callback")
