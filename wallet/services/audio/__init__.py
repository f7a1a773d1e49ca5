"""Audio capture package."""

from wallet.services.audio.recorder import AudioRecorder, FileAudioRecorder

__all__ = ["AudioRecorder", "FileAudioRecorder"]
