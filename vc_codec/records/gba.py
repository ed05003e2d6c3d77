"""
GBA title record layout.
"""

from dataclasses import dataclass
from enum import IntEnum

from ..io.struct_fields import ubyte_field, uint_field, ushort_field
from .base import Platform, RecordCodec, register_codec


class GbaSaveType(IntEnum):
    NONE = 0
    SRAM = 1
    EEPROM_4K = 2
    EEPROM_64K = 3
    FLASH_512K = 4
    FLASH_1M = 5


@dataclass
class GbaFixedFields:
    """GBA fixed fields, following the platform tag byte."""
    players_count: int = ubyte_field(1, minimum=1, maximum=4)
    save_count: int = ubyte_field(0, maximum=16)
    volume: int = ubyte_field(100, maximum=100)
    simultaneous: int = ubyte_field(0, maximum=1)
    save_type: int = ubyte_field(GbaSaveType.NONE, choices=GbaSaveType)
    # frames between rewind snapshots
    rewind_interval: int = ushort_field(0)
    sram_file_size: int = uint_field(0)


@register_codec
class GbaRecordCodec(RecordCodec):
    """GBA records; GBA titles have no SFROM container."""

    platform = Platform.GBA
    fixed_type = GbaFixedFields
    string_fields = {
        'title': 64,
        'publisher': 64,
        'code': 16,
        'release_date': 16,
        'copyright': 128,
    }
