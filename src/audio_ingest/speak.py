"""Hand text to an external text-to-speech command."""

import shlex
import subprocess
from pathlib import Path
from typing import Union

from .utils.logging import get_logger

logger = get_logger(__name__)


def speak_with_file(command: str, text: str, path: Union[str, Path], voice_id: int) -> bool:
    """Write ``text`` to ``path`` and run ``command voice_id path``.

    Args:
        command: Speech command, may include its own arguments
        text: Text to speak
        path: File the text is written to
        voice_id: Voice passed to the command

    Returns:
        True if the file was written and the command exited with status 0
    """
    try:
        Path(path).write_text(text, encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to write speak file {path}: {e}")
        return False

    cmd = shlex.split(command) + [str(voice_id), str(path)]
    try:
        result = subprocess.run(cmd, check=False)
    except OSError as e:
        logger.error(f"Failed to run speak command {cmd[0]}: {e}")
        return False

    if result.returncode != 0:
        logger.error(f"Speak command exited with code {result.returncode}")
        return False

    return True
