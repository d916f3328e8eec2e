from .whisper import MODEL_SIZES, FasterWhisperRecognizer

__all__ = ["MODEL_SIZES", "FasterWhisperRecognizer"]
