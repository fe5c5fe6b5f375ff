"""Speech source capability used to drive the live transcript."""

from .source import BufferedSpeechSource, LiveTextListener, SpeechSource

__all__ = ["BufferedSpeechSource", "LiveTextListener", "SpeechSource"]
