"""
SNES / SFC layouts: title records and SFROM metadata.
"""

from dataclasses import dataclass, field, fields, replace
from enum import IntEnum
from typing import Any, Dict

from ..errors import InvalidFieldValue, MalformedRecord
from ..io.binary_stream import BinaryStream, BinaryWriter, struct_layout
from ..io.opaque import OpaqueRegion
from ..io.struct_fields import array_field, ubyte_field, uint_field, ushort_field
from ..utils.string_utils import sanitize_sort_title
from .base import Platform, RecordCodec, field_by_name, register_codec, validate_domain
from .game_tags import GameTags


class RomType(IntEnum):
    LOROM = 0x14
    HIROM = 0x15


class FrameRate(IntEnum):
    PAL = 0x32    # 50 fps
    NTSC = 0x3C   # 60 fps


class EnhancementChip(IntEnum):
    NORMAL = 0x00
    DSP1 = 0x02
    SDD1 = 0x03
    CX4 = 0x04
    MEGA_MAN_X = 0x05
    SA1_1 = 0x06
    SA1_2 = 0x07
    SA1_3 = 0x08
    SA1_4 = 0x09
    SA1_5 = 0x0A
    SA1_6 = 0x0B
    SUPER_FX = 0x0C


@dataclass
class SnesFixedFields:
    """SNES fixed fields, following the platform tag byte."""
    players_count: int = ubyte_field(1, minimum=1, maximum=5)
    save_count: int = ubyte_field(0, maximum=16)
    volume: int = ubyte_field(100, maximum=100)
    simultaneous: int = ubyte_field(0, maximum=1)
    rom_type: int = ubyte_field(RomType.LOROM, choices=RomType)
    enhancement_chip: int = ubyte_field(EnhancementChip.NORMAL, choices=EnhancementChip)
    fps: int = ubyte_field(FrameRate.NTSC, choices=FrameRate)
    preset_id: int = ushort_field(0)
    sram_file_size: int = uint_field(0)


@dataclass
class SnesFooter:
    """Fixed part of the SFROM metadata section (0x1B bytes)."""
    fps: int = ubyte_field(FrameRate.NTSC, choices=FrameRate)
    rom_size: int = uint_field()
    pcm_samples_size: int = uint_field()
    pcm_footer_size: int = uint_field()
    preset_id: int = ushort_field()
    player_count: int = ubyte_field(1, minimum=1, maximum=5)
    sound_volume: int = ubyte_field(100, maximum=100)
    rom_type: int = ubyte_field(RomType.LOROM, choices=RomType)
    enhancement_chip: int = ubyte_field(EnhancementChip.NORMAL, choices=EnhancementChip)
    reserved: bytes = array_field(8)


# Footer fields that mirror section lengths; kept in step by the edit session
SIZE_FIELDS = ('rom_size', 'pcm_samples_size', 'pcm_footer_size')


@dataclass
class SnesMetadata:
    """
    Decoded SFROM metadata section.

    Attributes:
        footer: Fixed fields
        tags: Game tags following the footer
        opaque: Bytes after the last recognised tag
    """
    footer: SnesFooter
    tags: GameTags = field(default_factory=GameTags)
    opaque: OpaqueRegion = field(default_factory=OpaqueRegion.empty)

    def get(self, name: str) -> Any:
        if hasattr(self.footer, name) and name != 'reserved':
            return getattr(self.footer, name)
        return self.tags.value(name)

    @property
    def frame_rate(self) -> int:
        """Frames per second (50 or 60)."""
        return self.footer.fps

    @property
    def is_hirom(self) -> bool:
        return self.footer.rom_type == RomType.HIROM


@register_codec
class SnesRecordCodec(RecordCodec):
    """SNES records and the SNES SFROM metadata section."""

    platform = Platform.SNES
    fixed_type = SnesFixedFields
    string_fields = {
        'title': 96,
        'publisher': 64,
        'code': 16,
        'release_date': 16,
        'copyright': 128,
        'sort_title': 96,
    }

    def initial_values(self, initial: Dict[str, Any]) -> Dict[str, Any]:
        title = initial.get('title')
        if isinstance(title, str) and 'sort_title' not in initial:
            initial['sort_title'] = sanitize_sort_title(title)
        return initial

    # ========== SFROM Metadata ==========

    @property
    def footer_size(self) -> int:
        return struct_layout(SnesFooter, self.endian)[2]

    def decode_metadata(self, source: bytes, offset: int, length: int) -> SnesMetadata:
        """
        Decode an SFROM metadata section.

        Args:
            source: The whole SFROM buffer
            offset: Section start
            length: Section length

        Raises:
            MalformedRecord: If the section is shorter than the footer
        """
        if length < self.footer_size:
            raise MalformedRecord(
                "SNES metadata section too short",
                offset=offset,
                expected=self.footer_size,
                found=length
            )

        stream = BinaryStream(source, self.endian)
        footer = stream.read_class(SnesFooter, offset)
        tags_start = offset + self.footer_size
        end = offset + length
        tags, consumed = GameTags.parse(stream, tags_start, end)
        tail = tags_start + consumed

        return SnesMetadata(
            footer=footer,
            tags=tags,
            opaque=OpaqueRegion(source, tail, end - tail),
        )

    def encode_metadata(self, metadata: SnesMetadata) -> bytes:
        writer = BinaryWriter(self.endian)
        writer.write_class(metadata.footer)
        writer.write_bytes(metadata.tags.encode())
        writer.write_bytes(metadata.opaque.data)
        return writer.getvalue()

    def validate_metadata(self, name: str, value: Any) -> Any:
        field_info = field_by_name(SnesFooter, name)
        if field_info is None or name == 'reserved':
            raise InvalidFieldValue(
                f"unknown metadata field {name!r}",
                expected=[f.name for f in fields(SnesFooter) if f.name != 'reserved']
            )
        return validate_domain(field_info, value)

    def set_metadata_field(self, metadata: SnesMetadata, name: str, value: Any) -> None:
        stored = self.validate_metadata(name, value)
        metadata.footer = replace(metadata.footer, **{name: stored})
