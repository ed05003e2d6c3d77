"""
Dataclass field helpers for binary structures.

Fields created with these helpers carry their on-disk size and, optionally,
the range of values an edit may store in them. BinaryStream uses the size
metadata to read and write whole structures; the record codecs use the range
metadata to validate edits.
"""

from dataclasses import field
from enum import IntEnum
from typing import Any, Dict, Optional, Type


def _int_field(
    binary_size: int,
    default: int,
    unsigned: bool,
    minimum: Optional[int],
    maximum: Optional[int],
    choices: Optional[Type[IntEnum]]
):
    bits = binary_size * 8
    if minimum is None:
        minimum = 0 if unsigned else -(1 << (bits - 1))
    if maximum is None:
        maximum = (1 << bits) - 1 if unsigned else (1 << (bits - 1)) - 1
    metadata = {
        'binary_size': binary_size,
        'unsigned': unsigned,
        'minimum': minimum,
        'maximum': maximum,
    }
    if choices is not None:
        metadata['choices'] = choices
    return field(default=default, metadata=metadata)


def ubyte_field(
    default: int = 0,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None,
    choices: Optional[Type[IntEnum]] = None
):
    """Create a field that should be read as unsigned byte (1 byte)."""
    return _int_field(1, default, True, minimum, maximum, choices)


def ushort_field(
    default: int = 0,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None,
    choices: Optional[Type[IntEnum]] = None
):
    """Create a field that should be read as unsigned short (2 bytes)."""
    return _int_field(2, default, True, minimum, maximum, choices)


def uint_field(
    default: int = 0,
    minimum: Optional[int] = None,
    maximum: Optional[int] = None,
    choices: Optional[Type[IntEnum]] = None
):
    """Create a field that should be read as unsigned int (4 bytes)."""
    return _int_field(4, default, True, minimum, maximum, choices)


def array_field(length: int, default_factory=None):
    """Create a field for fixed-size byte arrays."""
    if default_factory is None:
        default_factory = lambda: b'\x00' * length
    return field(
        default_factory=default_factory,
        metadata={'array_length': length}
    )


def field_domain(field_info) -> Dict[str, Any]:
    """
    Get the value domain recorded on a field.

    Returns a dict with 'minimum', 'maximum' and 'choices' for integer
    fields, or 'array_length' for byte arrays. Fields without binary
    metadata return an empty dict.
    """
    metadata = getattr(field_info, 'metadata', None) or {}
    if 'array_length' in metadata:
        return {'array_length': metadata['array_length']}
    if 'binary_size' in metadata:
        return {
            'minimum': metadata['minimum'],
            'maximum': metadata['maximum'],
            'choices': metadata.get('choices'),
        }
    return {}


# struct format characters by (size, unsigned)
STRUCT_FORMAT: Dict[tuple, str] = {
    (1, True): 'B',
    (1, False): 'b',
    (2, True): 'H',
    (2, False): 'h',
    (4, True): 'I',
    (4, False): 'i',
    (8, True): 'Q',
    (8, False): 'q',
}
