"""Non-blocking keyboard input for the event loop.

Keys are read from the controlling terminal (``/dev/tty``) rather than
stdin, so stdin stays free to be a data source. The terminal is switched to
cbreak mode for the session and restored on exit.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import sys
from typing import Any

try:
    import termios
    import tty
except ImportError:  # pragma: no cover - not available on Windows
    termios = None  # type: ignore[assignment]
    tty = None  # type: ignore[assignment]

_logger = logging.getLogger(__name__)

ESCAPE_SEQUENCES: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
}


def decode_keys(data: str) -> list[str]:
    """Split raw terminal input into key names.

    Arrow keys become ``"left"``/``"right"``/``"up"``/``"down"``, a lone ESC
    becomes ``"escape"``, ``Ctrl+C`` becomes ``"q"``; everything else is one
    key per character. Unknown escape sequences are dropped.
    """
    keys: list[str] = []
    i = 0
    while i < len(data):
        char = data[i]
        if char == "\x1b":
            sequence = data[i : i + 3]
            if sequence in ESCAPE_SEQUENCES:
                keys.append(ESCAPE_SEQUENCES[sequence])
                i += 3
                continue
            if i + 1 < len(data) and data[i + 1] in "[O":
                # Skip an unknown CSI/SS3 sequence up to its final byte.
                j = i + 2
                while j < len(data) and not ("@" <= data[j] <= "~"):
                    j += 1
                i = j + 1
                continue
            keys.append("escape")
        elif char == "\x03":
            keys.append("q")
        elif char in "\r\n":
            keys.append("enter")
        else:
            keys.append(char)
        i += 1
    return keys


class KeyboardInput:
    """Feed decoded key names into an :class:`asyncio.Queue`.

    Usage::

        async with KeyboardInput() as keyboard:
            key = await keyboard.keys.get()
    """

    def __init__(self, device: str = "/dev/tty") -> None:
        self._device = device
        self.keys: asyncio.Queue[str] = asyncio.Queue()
        self._fd: int | None = None
        self._owns_fd = False
        self._old_settings: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def attached(self) -> bool:
        return self._fd is not None

    def _open(self) -> int | None:
        if termios is None or tty is None:
            return None
        try:
            fd = os.open(self._device, os.O_RDONLY | os.O_NONBLOCK)
        except OSError:
            if sys.stdin is not None and sys.stdin.isatty():
                return sys.stdin.fileno()
            return None
        self._owns_fd = True
        return fd

    async def __aenter__(self) -> KeyboardInput:
        self._loop = asyncio.get_running_loop()
        fd = self._open()
        if fd is None:
            _logger.warning("No terminal available for keyboard input")
            return self
        self._fd = fd
        assert termios is not None and tty is not None  # noqa: S101
        self._old_settings = termios.tcgetattr(fd)
        tty.setcbreak(fd)
        self._loop.add_reader(fd, self._on_readable)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        fd = self._fd
        self._fd = None
        if fd is None:
            return
        if self._loop is not None:
            self._loop.remove_reader(fd)
        if self._old_settings is not None and termios is not None:
            termios.tcsetattr(fd, termios.TCSADRAIN, self._old_settings)
            self._old_settings = None
        if self._owns_fd:
            with contextlib.suppress(OSError):
                os.close(fd)
            self._owns_fd = False

    def _on_readable(self) -> None:
        if self._fd is None:
            return
        try:
            data = os.read(self._fd, 64)
        except BlockingIOError:
            return
        except OSError:
            _logger.debug("Keyboard read failed", exc_info=True)
            return
        for key in decode_keys(data.decode("utf-8", "ignore")):
            self.keys.put_nowait(key)
