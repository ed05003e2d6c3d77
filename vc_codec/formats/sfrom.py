"""
SFROM container parser and writer.

An SFROM packages a SNES ROM image together with the runtime metadata the
emulator needs. The header's section table locates the ROM, optional PCM
audio and S-DD1 data, and the platform metadata; the last four bytes hold a
checksum over everything before them.
"""

import copy
import logging
from dataclasses import replace
from typing import Dict, List, Optional

from ..checksum import Checksum, get_checksum
from ..config import Config
from ..errors import BadMagic, MalformedHeader, MalformedSectionTable, UnsupportedVersion
from ..io.binary_stream import BinaryWriter
from ..io.opaque import OpaqueRegion
from ..records.base import RecordCodec, get_codec
from ..utils.string_utils import escape_bytes
from .document import BinaryDocument
from .sfrom_structures import (
    REQUIRED_KINDS,
    SFROM_MAGIC,
    SFROM_VERSION,
    SectionKind,
    SectionTableEntry,
    SfromHeader,
)

log = logging.getLogger(__name__)


class SfromDocument(BinaryDocument):
    """
    Parser for SFROM files.

    Attributes:
        header: The file header
        sections: Section table entries in table order
        contents: Section bytes by kind, as OpaqueRegions
        codec: Record codec for the header's platform tag
        metadata: Decoded metadata section (SnesMetadata for SNES)
    """

    KIND = 'sfrom'

    def __init__(self, data: bytes, config: Optional[Config] = None):
        """
        Parse an SFROM file.

        Args:
            data: Raw bytes of the file
            config: Parse options

        Raises:
            ParseError: If the file is structurally invalid
        """
        super().__init__(data, config)

        self.header = self._read_header()
        self.sections = self.read_class_array(
            SectionTableEntry, self.size_of(SfromHeader), self.header.section_count
        )
        self._validate_sections()

        self.contents: Dict[int, OpaqueRegion] = {
            entry.kind: OpaqueRegion(self.buffer, entry.offset, entry.length)
            for entry in self.sections
        }

        self.codec: RecordCodec = get_codec(self.header.platform)
        meta = self.section(SectionKind.METADATA)
        self.metadata = self.codec.decode_metadata(self.buffer, meta.offset, meta.length)

        self._verify_checksum()
        log.debug(
            "Parsed SFROM %s: %d sections, ROM %d bytes",
            self.game_id, len(self.sections), self.rom.length
        )

    def checksum_algorithm(self) -> Checksum:
        return get_checksum(self.config.sfrom_checksum)

    def _read_header(self) -> SfromHeader:
        header = self.read_class(SfromHeader, 0)

        if header.magic != SFROM_MAGIC:
            raise BadMagic(
                "Invalid SFROM file: wrong magic number",
                offset=0,
                expected=f"0x{SFROM_MAGIC:08x}",
                found=f"0x{header.magic:08x}"
            )
        if header.version != SFROM_VERSION:
            raise UnsupportedVersion(
                f"SFROM version {header.version} is not supported",
                offset=0x08,
                expected=SFROM_VERSION,
                found=header.version
            )
        if header.file_size != self.length:
            raise MalformedHeader(
                "SFROM file size does not match buffer",
                offset=0x04,
                expected=self.length,
                found=header.file_size
            )
        return header

    @property
    def table_end(self) -> int:
        return self.size_of(SfromHeader) + len(self.sections) * self.size_of(SectionTableEntry)

    def _validate_sections(self) -> None:
        """Check bounds, kind uniqueness, required kinds and overlaps."""
        start, end = self.table_end, self.payload_end
        if start > end:
            raise MalformedSectionTable(
                "section table overlaps checksum",
                offset=self.size_of(SfromHeader),
                expected=f"end <= 0x{end:x}",
                found=f"0x{start:x}"
            )

        entry_size = self.size_of(SectionTableEntry)
        seen = set()
        for i, entry in enumerate(self.sections):
            entry_offset = self.size_of(SfromHeader) + i * entry_size
            if entry.offset < start or entry.end > end:
                raise MalformedSectionTable(
                    f"section {i} ({entry.kind_name}) outside payload area",
                    offset=entry_offset,
                    expected=f"[0x{start:x}, 0x{end:x})",
                    found=f"[0x{entry.offset:x}, 0x{entry.end:x})"
                )
            if entry.kind in seen:
                raise MalformedSectionTable(
                    f"duplicate section kind {entry.kind_name}",
                    offset=entry_offset,
                    found=entry.kind
                )
            seen.add(entry.kind)

        for kind in REQUIRED_KINDS:
            if kind not in seen:
                raise MalformedSectionTable(
                    f"missing {kind.name} section",
                    offset=self.size_of(SfromHeader),
                    expected=int(kind)
                )

        ordered = sorted(self.sections, key=lambda e: e.offset)
        for prev, entry in zip(ordered, ordered[1:]):
            if entry.offset < prev.end:
                raise MalformedSectionTable(
                    f"{entry.kind_name} section overlaps {prev.kind_name}",
                    offset=entry.offset,
                    expected=f">= 0x{prev.end:x}",
                    found=f"0x{entry.offset:x}"
                )

    # ========== Public API ==========

    def section(self, kind: int) -> Optional[SectionTableEntry]:
        """Get the table entry for a section kind, or None."""
        return next((entry for entry in self.sections if entry.kind == kind), None)

    def section_data(self, kind: int) -> Optional[bytes]:
        """Get the bytes of a section, or None if the file has no such section."""
        region = self.contents.get(kind)
        return region.data if region is not None else None

    @property
    def platform(self) -> int:
        return self.header.platform

    @property
    def game_id(self) -> str:
        return escape_bytes(self.header.game_id.rstrip(b'\x00'))

    @property
    def rom(self) -> OpaqueRegion:
        """The ROM image, never decoded."""
        return self.contents[SectionKind.ROM]

    @property
    def has_pcm(self) -> bool:
        return SectionKind.PCM_SAMPLES in self.contents

    # ========== Serialization ==========

    def _section_bytes(self, kind: int) -> bytes:
        if kind == SectionKind.METADATA and self.is_dirty('metadata', 'tag'):
            return self.codec.encode_metadata(self.metadata)
        return self.contents[kind].data

    def _rebuild(self) -> bytes:
        """
        Lay sections out again in on-disk order.

        The bytes between sections (and after the last one) are copied from
        the source, so offsets only move when a section changed length.
        """
        entries: List[SectionTableEntry] = [replace(entry) for entry in self.sections]
        payload = BinaryWriter(self.endian)
        cursor = self.table_end
        prev_end = self.table_end

        for i in sorted(range(len(entries)), key=lambda i: self.sections[i].offset):
            original = self.sections[i]
            data = self._section_bytes(original.kind)

            gap = self.buffer[prev_end:original.offset]
            payload.write_bytes(gap)
            cursor += len(gap)

            entries[i].offset = cursor
            entries[i].length = len(data)
            payload.write_bytes(data)
            cursor += len(data)
            prev_end = original.end

        payload.write_bytes(self.buffer[prev_end:self.payload_end])

        body_size = self.table_end + len(payload.getvalue())
        header = replace(
            self.header,
            file_size=body_size + 4,
            section_count=len(entries)
        )

        writer = BinaryWriter(self.endian)
        writer.write_class(header)
        for entry in entries:
            writer.write_class(entry)
        writer.write_bytes(payload.getvalue())
        return writer.getvalue()

    def clone(self) -> 'SfromDocument':
        doc = copy.copy(self)
        doc.header = replace(self.header)
        doc.sections = [replace(entry) for entry in self.sections]
        doc.contents = dict(self.contents)
        doc.metadata = copy.deepcopy(self.metadata)
        doc.dirty = set(self.dirty)
        doc._session = None
        return doc


def parse_sfrom(data: bytes, config: Optional[Config] = None) -> SfromDocument:
    """Parse an SFROM file."""
    return SfromDocument(data, config)
