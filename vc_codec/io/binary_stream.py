"""
Bounds-checked binary reader and append-only writer.

BinaryStream reads (and, over a bytearray, overwrites) values at explicit
offsets without ever growing the buffer. BinaryWriter is the append buffer
used while serializing. Both read and write dataclass structures whose
fields were declared with the helpers in struct_fields.
"""

import struct
from io import BytesIO
from dataclasses import fields, is_dataclass
from typing import Dict, List, Optional, Tuple, Type, TypeVar, Union

from ..errors import OutOfBounds, SerializeError
from .struct_fields import STRUCT_FORMAT

T = TypeVar('T')

# Cache for compiled struct layouts
# Key: (dataclass_type, endian) -> (struct_format, field_names, struct_size)
_STRUCT_CACHE: Dict[Tuple[type, str], Tuple[str, List[str], int]] = {}


def struct_layout(cls: type, endian: str = '<') -> Tuple[str, List[str], int]:
    """
    Get or compute the struct format for a dataclass.

    Returns:
        Tuple of (struct_format, field_names, struct_size)
    """
    cache_key = (cls, endian)
    if cache_key in _STRUCT_CACHE:
        return _STRUCT_CACHE[cache_key]

    if not is_dataclass(cls):
        raise TypeError(f"{cls!r} is not a dataclass")

    format_parts = [endian]
    field_names = []

    for field_info in fields(cls):
        metadata = field_info.metadata or {}
        if 'array_length' in metadata:
            format_parts.append(f"{metadata['array_length']}s")
        elif 'binary_size' in metadata:
            key = (metadata['binary_size'], metadata.get('unsigned', True))
            format_parts.append(STRUCT_FORMAT[key])
        else:
            raise TypeError(
                f"{cls.__name__}.{field_info.name} has no binary layout"
            )
        field_names.append(field_info.name)

    format_str = ''.join(format_parts)
    result = (format_str, field_names, struct.calcsize(format_str))
    _STRUCT_CACHE[cache_key] = result
    return result


def pack_class(instance, endian: str = '<') -> bytes:
    """Encode a dataclass instance using its field layout."""
    format_str, field_names, _ = struct_layout(type(instance), endian)
    values = [getattr(instance, name) for name in field_names]
    try:
        return struct.pack(format_str, *values)
    except struct.error as e:
        raise SerializeError(f"cannot encode {type(instance).__name__}: {e}")


class BinaryStream:
    """
    Bounds-checked view over a byte buffer.

    All reads accept an optional absolute address; without one they continue
    from the current position. Any access that would leave the buffer raises
    OutOfBounds. Writes are only possible over a bytearray and never resize it.

    Attributes:
        endian: struct byte-order prefix, fixed at construction
        position: current offset used by reads without an address
    """

    def __init__(self, data: Union[bytes, bytearray], endian: str = '<'):
        """
        Initialize a BinaryStream.

        Args:
            data: The buffer to read from (bytearray to allow writes)
            endian: '<' for little-endian, '>' for big-endian
        """
        if endian not in ('<', '>'):
            raise ValueError(f"Invalid endianness: {endian!r}")
        self._data = data
        self.endian = endian
        self.position = 0

    # ========== Position and Length ==========

    @property
    def length(self) -> int:
        """Get buffer length."""
        return len(self._data)

    @property
    def buffer(self) -> Union[bytes, bytearray]:
        """The underlying buffer (not copied)."""
        return self._data

    @property
    def remaining(self) -> int:
        """Bytes left after the current position."""
        return max(0, len(self._data) - self.position)

    def _check(self, offset: int, size: int) -> None:
        if offset < 0 or size < 0 or offset + size > len(self._data):
            raise OutOfBounds(offset, size, len(self._data))

    def _seek(self, addr: Optional[int]) -> int:
        if addr is not None:
            self.position = addr
        return self.position

    # ========== Primitive Readers ==========

    def read_bytes(self, count: int, addr: Optional[int] = None) -> bytes:
        """Read raw bytes."""
        offset = self._seek(addr)
        self._check(offset, count)
        self.position = offset + count
        return bytes(self._data[offset:offset + count])

    def _read(self, fmt: str, size: int, addr: Optional[int]) -> int:
        return struct.unpack(self.endian + fmt, self.read_bytes(size, addr))[0]

    def read_byte(self, addr: Optional[int] = None) -> int:
        """Read an unsigned byte."""
        return self._read('B', 1, addr)

    def read_uint16(self, addr: Optional[int] = None) -> int:
        """Read an unsigned 16-bit integer."""
        return self._read('H', 2, addr)

    def read_uint24(self, addr: Optional[int] = None) -> int:
        """Read an unsigned 24-bit integer."""
        raw = self.read_bytes(3, addr)
        return int.from_bytes(raw, 'little' if self.endian == '<' else 'big')

    def read_uint32(self, addr: Optional[int] = None) -> int:
        """Read an unsigned 32-bit integer."""
        return self._read('I', 4, addr)

    # ========== Write Methods ==========

    def _write(self, data: bytes, addr: Optional[int]) -> None:
        if not isinstance(self._data, bytearray):
            raise TypeError("BinaryStream over immutable bytes is read-only")
        offset = self._seek(addr)
        self._check(offset, len(data))
        self._data[offset:offset + len(data)] = data
        self.position = offset + len(data)

    def write_bytes(self, data: bytes, addr: Optional[int] = None) -> None:
        """Overwrite raw bytes in place."""
        self._write(data, addr)

    def write_byte(self, value: int, addr: Optional[int] = None) -> None:
        """Write an unsigned byte."""
        self._write(_pack(self.endian + 'B', value), addr)

    def write_uint16(self, value: int, addr: Optional[int] = None) -> None:
        """Write an unsigned 16-bit integer."""
        self._write(_pack(self.endian + 'H', value), addr)

    def write_uint32(self, value: int, addr: Optional[int] = None) -> None:
        """Write an unsigned 32-bit integer."""
        self._write(_pack(self.endian + 'I', value), addr)

    # ========== Class/Struct Reading ==========

    def read_class(self, cls: Type[T], addr: Optional[int] = None) -> T:
        """
        Read a dataclass instance from the stream.

        All primitive fields are unpacked with one pre-compiled struct
        format, cached per class and byte order.

        Args:
            cls: The dataclass type to read
            addr: Optional address to seek to before reading

        Returns:
            An instance of the dataclass with fields populated from the stream
        """
        format_str, field_names, struct_size = struct_layout(cls, self.endian)
        values = struct.unpack(format_str, self.read_bytes(struct_size, addr))
        return cls(**dict(zip(field_names, values)))

    def read_class_array(
        self,
        cls: Type[T],
        addr: Optional[int] = None,
        count: Optional[int] = None
    ) -> List[T]:
        """
        Read an array of dataclass instances.

        The whole array is bounds-checked before any element is decoded.
        """
        if count is None or count <= 0:
            return []

        format_str, field_names, struct_size = struct_layout(cls, self.endian)
        total_data = self.read_bytes(struct_size * count, addr)
        results = []
        for i in range(count):
            offset = i * struct_size
            values = struct.unpack(format_str, total_data[offset:offset + struct_size])
            results.append(cls(**dict(zip(field_names, values))))
        return results

    def write_class(self, instance, addr: Optional[int] = None) -> None:
        """Overwrite a dataclass instance in place."""
        self._write(pack_class(instance, self.endian), addr)

    # ========== Utility Methods ==========

    def size_of(self, cls: Type) -> int:
        """Calculate the encoded size of a dataclass."""
        return struct_layout(cls, self.endian)[2]

    def slice(self, offset: int, length: int) -> 'BinaryStream':
        """Return a bounds-checked sub-view; its offsets start at zero."""
        self._check(offset, length)
        return BinaryStream(self._data[offset:offset + length], self.endian)

    def get_data(self) -> bytes:
        """Get the underlying data."""
        return bytes(self._data)


class BinaryWriter:
    """
    Append buffer used during serialization.

    Unlike BinaryStream this grows as data is written. Offsets that are only
    known later can be back-filled with patch_uint32.
    """

    def __init__(self, endian: str = '<'):
        if endian not in ('<', '>'):
            raise ValueError(f"Invalid endianness: {endian!r}")
        self._stream = BytesIO()
        self.endian = endian

    @property
    def position(self) -> int:
        """Get current write position (the end of the buffer)."""
        return self._stream.tell()

    def write_bytes(self, data: bytes) -> int:
        """Append raw bytes and return the offset they were written at."""
        offset = self._stream.tell()
        self._stream.write(data)
        return offset

    def write_byte(self, value: int) -> int:
        """Append an unsigned byte."""
        return self.write_bytes(_pack(self.endian + 'B', value))

    def write_uint16(self, value: int) -> int:
        """Append an unsigned 16-bit integer."""
        return self.write_bytes(_pack(self.endian + 'H', value))

    def write_uint24(self, value: int) -> int:
        """Append an unsigned 24-bit integer."""
        if not 0 <= value <= 0xFFFFFF:
            raise SerializeError(f"value {value} does not fit in 24 bits")
        order = 'little' if self.endian == '<' else 'big'
        return self.write_bytes(value.to_bytes(3, order))

    def write_uint32(self, value: int) -> int:
        """Append an unsigned 32-bit integer."""
        return self.write_bytes(_pack(self.endian + 'I', value))

    def write_class(self, instance) -> int:
        """Append a dataclass instance."""
        return self.write_bytes(pack_class(instance, self.endian))

    def patch_uint32(self, offset: int, value: int) -> None:
        """Overwrite a previously written uint32."""
        end = self._stream.tell()
        if offset < 0 or offset + 4 > end:
            raise OutOfBounds(offset, 4, end)
        self._stream.seek(offset)
        self._stream.write(_pack(self.endian + 'I', value))
        self._stream.seek(end)

    def getvalue(self) -> bytes:
        """Get everything written so far."""
        return self._stream.getvalue()


def _pack(fmt: str, value: int) -> bytes:
    try:
        return struct.pack(fmt, value)
    except struct.error as e:
        raise SerializeError(f"cannot encode {value!r} as '{fmt}': {e}")
