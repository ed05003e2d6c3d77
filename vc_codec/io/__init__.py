"""
IO module for binary buffer handling.
"""

from .binary_stream import BinaryStream, BinaryWriter, pack_class, struct_layout
from .opaque import OpaqueRegion
from .struct_fields import array_field, field_domain, ubyte_field, uint_field, ushort_field

__all__ = [
    'BinaryStream', 'BinaryWriter', 'OpaqueRegion', 'pack_class', 'struct_layout',
    'array_field', 'field_domain', 'ubyte_field', 'uint_field', 'ushort_field',
]
