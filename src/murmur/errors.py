"""Exception hierarchy shared by murmur components."""


class MurmurError(Exception):
  """Base class for errors raised by murmur."""


class ConfigurationError(MurmurError):
  """A component was configured with a resource that does not exist or cannot be used."""


class AudioSourceError(MurmurError):
  """Audio could not be acquired or decoded."""


class WavFormatError(AudioSourceError):
  """A replay file is not an uncompressed RIFF/WAVE container we can read."""


class RecognitionError(MurmurError):
  """The speech recognizer failed to load or to transcribe a window."""


class GenerationError(MurmurError):
  """The text generator failed to load or to produce a completion."""
