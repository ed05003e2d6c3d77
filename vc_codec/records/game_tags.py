"""
SFROM game tags.

After the fixed metadata fields an SFROM carries a run of tagged entries:
one ASCII letter followed by a payload whose size depends on the letter.
'D' is the only variable-size tag; its payload starts with a 24-bit length.
Parsing stops at the first byte that is not a known tag (or whose payload
does not fit); the caller keeps the rest as an opaque tail.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..errors import InvalidFieldValue
from ..io.binary_stream import BinaryStream, BinaryWriter

log = logging.getLogger(__name__)

# Payload size per tag letter; None marks a u24 length-prefixed payload
TAG_SIZES: Dict[str, Optional[int]] = {
    'A': 3,
    'D': None,
    'G': 5,
    'P': 7,
    'S': 3,
    'U': 2,
    'a': 1,
    'c': 1,
    'd': 1,
    'e': 1,
    'h': 1,
    'j': 1,
    'm': 1,
    'p': 1,
    'r': 1,
    't': 1,
    'v': 1,
}

TAG_NAMES: Dict[str, str] = {
    'A': 'armet_threshold',
    'D': 'sdd1_data',
    'G': 'preset',
    'P': 'flags',
    'S': 'unknown_s',
    'U': 'superfx_clock',
    'a': 'armet_version',
    'c': 'snes_header_location',
    'd': 'unknown_d',
    'e': 'enhancement_chip',
    'h': 'resolution_ratio',
    'j': 'unknown_j',
    'm': 'mouse_flag',
    'p': 'max_players',
    'r': 'visible_height',
    't': 'unknown_t',
    'v': 'volume',
}


@dataclass
class GameTag:
    letter: str
    payload: bytes

    def encode(self, writer: BinaryWriter) -> None:
        writer.write_bytes(self.letter.encode('ascii'))
        if TAG_SIZES[self.letter] is None:
            writer.write_uint24(len(self.payload))
        writer.write_bytes(self.payload)


class GameTags:
    """Ordered list of game tags with typed accessors for the known ones."""

    def __init__(self, tags: Optional[List[GameTag]] = None):
        self.tags: List[GameTag] = list(tags or [])

    @classmethod
    def parse(cls, stream: BinaryStream, start: int, end: int) -> Tuple['GameTags', int]:
        """
        Read tags from stream[start:end].

        Returns:
            Tuple of (tags, bytes consumed)
        """
        tags = []
        pos = start
        while pos < end:
            letter = chr(stream.read_byte(pos))
            if letter not in TAG_SIZES:
                break
            size = TAG_SIZES[letter]

            header = 1
            if size is None:
                if pos + 4 > end:
                    break
                size = stream.read_uint24(pos + 1)
                header = 4

            if pos + header + size > end:
                log.warning("Game tag '%s' at 0x%x truncated; keeping remainder opaque", letter, pos)
                break

            tags.append(GameTag(letter, stream.read_bytes(size, pos + header)))
            pos += header + size

        return cls(tags), pos - start

    def encode(self) -> bytes:
        writer = BinaryWriter()
        for tag in self.tags:
            tag.encode(writer)
        return writer.getvalue()

    # ========== Tag Access ==========

    def __len__(self) -> int:
        return len(self.tags)

    def __contains__(self, letter: str) -> bool:
        return self.find(letter) is not None

    def letters(self) -> List[str]:
        return [tag.letter for tag in self.tags]

    def find(self, letter: str) -> Optional[GameTag]:
        return next((tag for tag in self.tags if tag.letter == letter), None)

    def get(self, letter: str) -> Optional[bytes]:
        """Get the payload of the first tag with this letter."""
        tag = self.find(letter)
        return tag.payload if tag is not None else None

    def set(self, letter: str, payload: bytes) -> None:
        """
        Set a tag payload, replacing the first existing tag with that letter.

        Raises:
            InvalidFieldValue: If the letter is unknown or the payload has the
                wrong size
        """
        if letter not in TAG_SIZES:
            raise InvalidFieldValue(f"unknown game tag {letter!r}", expected=sorted(TAG_SIZES))
        payload = bytes(payload)
        size = TAG_SIZES[letter]
        if size is None:
            if len(payload) > 0xFFFFFF:
                raise InvalidFieldValue(f"tag {letter!r} payload too large", found=len(payload))
        elif len(payload) != size:
            raise InvalidFieldValue(f"tag {letter!r} payload size", expected=size, found=len(payload))

        tag = self.find(letter)
        if tag is None:
            self.tags.append(GameTag(letter, payload))
        else:
            tag.payload = payload

    def remove(self, letter: str) -> None:
        tag = self.find(letter)
        if tag is None:
            raise InvalidFieldValue(f"game tag {letter!r} not present")
        self.tags.remove(tag)

    def value(self, name: str):
        """
        Decode a known tag by name.

        One-byte tags decode to int, 'U' to a u16, 'G' to its preset id;
        the rest return their raw payload. Missing tags return None.
        """
        letter = next((k for k, v in TAG_NAMES.items() if v == name), None)
        if letter is None:
            raise KeyError(name)
        payload = self.get(letter)
        if payload is None:
            return None
        if TAG_SIZES[letter] == 1:
            return payload[0]
        if letter == 'U':
            return int.from_bytes(payload, 'little')
        if letter == 'G':
            return int.from_bytes(payload[3:5], 'little')
        return payload

    @property
    def preset_id(self) -> Optional[int]:
        return self.value('preset')

    @property
    def superfx_clock(self) -> Optional[int]:
        return self.value('superfx_clock')

    @property
    def max_players(self) -> Optional[int]:
        return self.value('max_players')

    @property
    def armet_threshold(self) -> Optional[bytes]:
        return self.value('armet_threshold')

    @property
    def sdd1_data(self) -> Optional[bytes]:
        return self.value('sdd1_data')

    def __repr__(self) -> str:
        return f"GameTags({''.join(self.letters())!r})"
