"""
SFROM structure definitions.
"""

from dataclasses import dataclass
from enum import IntEnum

from ..io.struct_fields import array_field, uint_field, ushort_field


# SFROM Magic
SFROM_MAGIC = 0x00000100
SFROM_VERSION = 1


class SectionKind(IntEnum):
    ROM = 1
    PCM_SAMPLES = 2
    PCM_FOOTER = 3
    METADATA = 4
    SDD1_DATA = 5


# Kinds every SFROM must contain exactly once
REQUIRED_KINDS = (SectionKind.ROM, SectionKind.METADATA)


@dataclass
class SfromHeader:
    """SFROM file header (0x20 bytes)."""
    magic: int = uint_field(SFROM_MAGIC)
    file_size: int = uint_field()
    version: int = ushort_field(SFROM_VERSION)
    platform: int = ushort_field()
    flags: int = uint_field()
    game_id: bytes = array_field(8)
    reserved: int = uint_field()
    section_count: int = uint_field()


@dataclass
class SectionTableEntry:
    """SFROM section table entry."""
    offset: int = uint_field()
    length: int = uint_field()
    kind: int = uint_field()

    @property
    def end(self) -> int:
        return self.offset + self.length

    @property
    def kind_name(self) -> str:
        try:
            return SectionKind(self.kind).name
        except ValueError:
            return f"UNKNOWN_{self.kind}"
