"""
Audio playback for synthesized speech.

Playback completion is observed by polling ``is_playing``; players do not
call back on completion.
"""

import logging
import os
import shlex
import subprocess
import tempfile
import uuid
from typing import Optional, Protocol

from watchgpt.errors import AudioPlayerError

logger = logging.getLogger(__name__)

DEFAULT_PLAYER_COMMAND = "ffplay -nodisp -autoexit -loglevel quiet"


class AudioPlayer(Protocol):
    def play(self, data: bytes, message_id: uuid.UUID) -> None: ...

    def stop(self) -> None: ...

    def is_playing(self, message_id: uuid.UUID) -> bool: ...


class SubprocessAudioPlayer:
    """Writes audio to a temp file and plays it with an external command."""

    def __init__(self, command: str = DEFAULT_PLAYER_COMMAND, suffix: str = ".aac"):
        self._command = shlex.split(command)
        self._suffix = suffix
        self._process: Optional[subprocess.Popen] = None
        self._path: Optional[str] = None
        self.playing_message_id: Optional[uuid.UUID] = None

    def play(self, data: bytes, message_id: uuid.UUID) -> None:
        self.stop()
        fd, path = tempfile.mkstemp(suffix=self._suffix, prefix="watchgpt-")
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        self._path = path
        try:
            self._process = subprocess.Popen(
                [*self._command, path], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            self._cleanup()
            raise AudioPlayerError(f"Failed to play audio: {e}")
        self.playing_message_id = message_id

    def stop(self) -> None:
        if self._process is not None and self._process.poll() is None:
            self._process.terminate()
            try:
                self._process.wait(timeout=2)
            except subprocess.TimeoutExpired:
                self._process.kill()
        self._process = None
        self.playing_message_id = None
        self._cleanup()

    def is_playing(self, message_id: uuid.UUID) -> bool:
        if self._process is None or self.playing_message_id != message_id:
            return False
        if self._process.poll() is None:
            return True
        self.stop()
        return False

    def _cleanup(self) -> None:
        if self._path:
            try:
                os.unlink(self._path)
            except OSError as e:
                logger.debug(f"Could not remove {self._path}: {e}")
            self._path = None
