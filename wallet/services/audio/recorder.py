"""
Audio Capture

The voice flow only needs three things from a recorder: ask for the
microphone, start, and stop with the full clip. Device capture lives
in the app shell; this module defines the seam and a file-backed
recorder for replaying saved clips.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union


class AudioRecorder(ABC):
    """Abstract audio recorder."""

    @abstractmethod
    async def request_permission(self) -> bool:
        """Return True if the microphone may be used."""
        pass

    @abstractmethod
    async def start(self) -> None:
        pass

    @abstractmethod
    async def stop(self) -> bytes:
        """Stop capturing and return the whole clip."""
        pass


class FileAudioRecorder(AudioRecorder):
    """
    Replays a pre-recorded clip from disk.

    Permission is granted when the file exists and can be read.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._recording = False

    @property
    def is_recording(self) -> bool:
        return self._recording

    async def request_permission(self) -> bool:
        return self._path.is_file()

    async def start(self) -> None:
        if not self._path.is_file():
            raise FileNotFoundError(f"Audio clip not found: {self._path}")
        self._recording = True

    async def stop(self) -> bytes:
        if not self._recording:
            raise RuntimeError("Recorder was not started")
        self._recording = False
        return self._path.read_bytes()
