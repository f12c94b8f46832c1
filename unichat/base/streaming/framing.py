"""SSE line framing.

Network fragments do not respect line boundaries. :class:`SSELineBuffer`
joins fragments, hands back every complete line and keeps at most one
partial line between calls. Bytes are decoded incrementally, so a multi-byte
UTF-8 character split across two fragments is reassembled instead of being
replaced.
"""

from __future__ import annotations

import codecs
from typing import List, Optional, Union

Fragment = Union[str, bytes, bytearray]

DATA_PREFIX = "data:"


class SSELineBuffer:
    """Accumulate fragments and split them into complete lines.

    Lines are returned without their terminator; ``\\r\\n`` endings are
    tolerated. Only lines starting with ``prefix`` are actionable (see
    :meth:`payload_of`); everything else (blank separators, ``event:`` and
    ``:`` comment lines) is framing noise.
    """

    def __init__(self, prefix: str = DATA_PREFIX) -> None:
        self.prefix = prefix
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def pending(self) -> str:
        """The partial line currently held."""
        return self._buffer

    def _text(self, fragment: Fragment) -> str:
        if isinstance(fragment, (bytes, bytearray)):
            return self._decoder.decode(bytes(fragment))
        return fragment

    def feed(self, fragment: Fragment) -> List[str]:
        """Append ``fragment`` and return the lines it completed."""
        text = self._text(fragment)
        if not text:
            return []
        pieces = (self._buffer + text).split("\n")
        self._buffer = pieces.pop()
        return [p[:-1] if p.endswith("\r") else p for p in pieces]

    def flush(self) -> List[str]:
        """Return the remaining buffered content as a final line, if any."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        tail = tail.rstrip("\r")
        return [tail] if tail.strip() else []

    def payload_of(self, line: str) -> Optional[str]:
        """Payload after the prefix (one optional space stripped), else None."""
        if not line.startswith(self.prefix):
            return None
        payload = line[len(self.prefix):]
        if payload.startswith(" "):
            payload = payload[1:]
        return payload if payload.strip() else None


__all__ = ["SSELineBuffer", "Fragment", "DATA_PREFIX"]
