"""Speech capture, synthesis and audio playback boundaries."""

from .capture import ThreadedCaptureStream
from .interfaces import AudioPlayer, CaptureStream, DialogService, DurationProbe, SpeechSynthesizer

__all__ = [
    "AudioPlayer",
    "CaptureStream",
    "DialogService",
    "DurationProbe",
    "SpeechSynthesizer",
    "ThreadedCaptureStream",
]
