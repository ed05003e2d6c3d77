"""
Opaque byte ranges.

An OpaqueRegion stands for bytes whose meaning is not modeled. It remembers
where they came from in the source buffer and only copies them out when
asked. Edits never change an OpaqueRegion; they replace it with a new one.
"""

from typing import Optional


class OpaqueRegion:
    """
    A byte range carried through parse, edit and serialize unchanged.

    Attributes:
        offset: Offset in the source buffer, or None for replacement bytes
        length: Number of bytes in the region
    """

    __slots__ = ('_source', 'offset', 'length', '_data')

    def __init__(self, source: bytes, offset: int, length: int):
        if offset < 0 or length < 0 or offset + length > len(source):
            raise ValueError(
                f"region 0x{offset:x}+{length} outside source of {len(source)} bytes"
            )
        self._source: Optional[bytes] = source
        self.offset: Optional[int] = offset
        self.length = length
        self._data: Optional[bytes] = None

    @classmethod
    def from_bytes(cls, data: bytes) -> 'OpaqueRegion':
        """Create a region holding explicit replacement bytes."""
        region = cls.__new__(cls)
        region._source = None
        region.offset = None
        region.length = len(data)
        region._data = bytes(data)
        return region

    @classmethod
    def empty(cls) -> 'OpaqueRegion':
        return cls.from_bytes(b'')

    @property
    def data(self) -> bytes:
        """The region's bytes, materialized on first access."""
        if self._data is None:
            self._data = bytes(self._source[self.offset:self.offset + self.length])
        return self._data

    @property
    def is_replaced(self) -> bool:
        """True if the bytes did not come from a parsed buffer."""
        return self._source is None

    def __len__(self) -> int:
        return self.length

    def __bytes__(self) -> bytes:
        return self.data

    def __eq__(self, other) -> bool:
        if isinstance(other, OpaqueRegion):
            return self.data == other.data
        if isinstance(other, (bytes, bytearray)):
            return self.data == bytes(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.data)

    def __deepcopy__(self, memo) -> 'OpaqueRegion':
        # Source buffers are immutable; copies share them.
        return self

    def __repr__(self) -> str:
        if self.offset is None:
            return f"OpaqueRegion(replaced, length={self.length})"
        return f"OpaqueRegion(offset=0x{self.offset:x}, length={self.length})"
