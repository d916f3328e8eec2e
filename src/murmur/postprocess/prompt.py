"""Prompt construction for transcript cleanup."""

CLEANUP_INSTRUCTIONS = (
  "You are a text cleaning assistant. Improve the spoken transcription below by:\n"
  "1. Removing repetitions and filler words (um, uh, like, you know, etc.)\n"
  "2. Fixing grammar and sentence structure\n"
  "3. Making the text more concise and coherent\n"
  "4. Preserving the original meaning and key points\n"
  "5. Organizing rambling thoughts into clear, structured sentences\n"
)


def build_cleanup_prompt(raw_text: str) -> str:
  """Wrap a raw transcript in the fixed cleanup instructions."""
  return (
    f"{CLEANUP_INSTRUCTIONS}\n"
    "Please clean up the following transcribed text:\n\n"
    f"{raw_text}\n\n"
    "Provide only the cleaned-up text without any explanations or commentary."
  )
