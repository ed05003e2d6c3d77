"""
VC database structure definitions.
"""

from dataclasses import dataclass

from ..io.struct_fields import array_field, uint_field, ushort_field


# VC database magic
VCDB_MAGIC = b'VCDB'
VCDB_VERSION = 1


@dataclass
class VcDbHeader:
    """VC database file header (0x20 bytes)."""
    magic: bytes = array_field(4, default_factory=lambda: VCDB_MAGIC)
    version: int = ushort_field(VCDB_VERSION)
    flags: int = ushort_field()
    record_count: int = uint_field()
    index_offset: int = uint_field()
    pool_offset: int = uint_field()
    pool_length: int = uint_field()
    reserved: bytes = array_field(8)


@dataclass
class RecordIndexEntry:
    """Record index entry: where one title record lives."""
    record_id: int = uint_field()
    offset: int = uint_field()
    length: int = uint_field()


@dataclass
class StringRef:
    """Reference to a string pool entry, relative to the pool start."""
    offset: int = uint_field()
    length: int = uint_field()
