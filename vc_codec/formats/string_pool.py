"""
String pool shared by the records of a VC database.

Entries are raw bytes addressed only by offset and length; there are no
terminators and no ownership tags. Rebuilding appends entries in first-use
order and can reuse an existing entry with identical bytes.
"""

from typing import Dict

from ..errors import DanglingReference
from .vcdb_structures import StringRef


class StringPool:
    """
    Append-only blob pool.

    Attributes:
        dedupe: Reuse an existing entry when the same bytes are added again
    """

    def __init__(self, data: bytes = b'', dedupe: bool = True):
        self._buffer = bytearray(data)
        self._entries: Dict[bytes, StringRef] = {}
        self.dedupe = dedupe

    def __len__(self) -> int:
        return len(self._buffer)

    def resolve(self, ref: StringRef) -> bytes:
        """
        Get the bytes a reference points at.

        Raises:
            DanglingReference: If the reference reaches past the pool
        """
        if ref.offset + ref.length > len(self._buffer):
            raise DanglingReference(
                "string reference outside pool",
                offset=ref.offset,
                expected=f"end <= {len(self._buffer)}",
                found=ref.offset + ref.length
            )
        return bytes(self._buffer[ref.offset:ref.offset + ref.length])

    def add(self, data: bytes) -> StringRef:
        """Append an entry (or reuse an identical one) and return its reference."""
        data = bytes(data)
        if self.dedupe and data in self._entries:
            return self._entries[data]

        ref = StringRef(offset=len(self._buffer), length=len(data))
        self._buffer.extend(data)
        self._entries.setdefault(data, ref)
        return ref

    def getvalue(self) -> bytes:
        """Get the pool bytes."""
        return bytes(self._buffer)
