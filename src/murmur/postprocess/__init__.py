from .generator import CompletionServerGenerator
from .interfaces import TextGenerator
from .processor import GeneratorFactory, JobState, PostProcessingJob, PostProcessor, ResultCallback
from .prompt import CLEANUP_INSTRUCTIONS, build_cleanup_prompt

__all__ = [
  "CLEANUP_INSTRUCTIONS",
  "CompletionServerGenerator",
  "GeneratorFactory",
  "JobState",
  "PostProcessingJob",
  "PostProcessor",
  "ResultCallback",
  "TextGenerator",
  "build_cleanup_prompt",
]
