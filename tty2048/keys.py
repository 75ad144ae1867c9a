"""Raw-mode keyboard polling for the terminal driver."""

import logging
import os
import select
import sys
import termios
import tty

logger = logging.getLogger(__name__)

ESC = "\x1b"
CSI = ESC + "["

# arrow keys arrive as ESC [ A..D, or ESC [ 1 ; mod A..D with a modifier held
ARROWS = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
}

# longest control sequence read before giving up on its final byte
MAX_SEQUENCE = 16


def _is_final(ch: str) -> bool:
    return "@" <= ch <= "~"


def decode(seq: str) -> str | None:
    """
    Translate the characters read for one key press to a key name.

    Plain keys come back as typed, case included. Control sequences other
    than the arrows decode to None.
    """
    if not seq:
        return None
    if seq[0] != ESC:
        return seq[0]
    if seq == ESC:
        return "esc"
    if seq.startswith(CSI) and len(seq) > 2:
        params, final = seq[2:-1], seq[-1]
        if final in ARROWS and (params == "" or (params.startswith("1;") and params[2:].isdigit())):
            return ARROWS[final]
    return None


class KeyReader:
    """
    Put the terminal into raw mode for as long as the reader is open.

    Usage:
        with KeyReader() as keys:
            key = keys.poll(1.0)
    """

    def __init__(self, stream=None):
        self.stream = stream if stream is not None else sys.stdin
        self.fd = self.stream.fileno()
        self._saved = None

    def __enter__(self) -> "KeyReader":
        self._saved = termios.tcgetattr(self.fd)
        tty.setraw(self.fd)
        logger.debug("terminal switched to raw mode")
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._saved is not None:
            termios.tcsetattr(self.fd, termios.TCSADRAIN, self._saved)
            self._saved = None
            logger.debug("terminal mode restored")

    def _ready(self, timeout: float) -> bool:
        readable, _, _ = select.select([self.fd], [], [], timeout)
        return bool(readable)

    def _read(self) -> str:
        return os.read(self.fd, 1).decode(errors="ignore")

    def poll(self, timeout: float) -> str | None:
        """Wait up to `timeout` seconds for a key press, None if there is none."""
        if not self._ready(timeout):
            return None

        seq = self._read()
        if seq != ESC:
            return decode(seq)

        # a lone ESC is the escape key, otherwise the rest of the sequence follows at once
        if self._ready(0.05):
            seq += self._read()
        if seq == CSI:
            # consume the whole sequence so none of it is read back as a key press
            while len(seq) < MAX_SEQUENCE and self._ready(0.05):
                ch = self._read()
                if not ch:
                    break
                seq += ch
                if _is_final(ch):
                    break
        return decode(seq)
