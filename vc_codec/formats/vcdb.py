"""
VC database parser and writer.

The database lists every title of a platform's emulation app. A fixed
header points at the record index and the string pool; each index entry
locates one title record, whose layout depends on the platform tag in its
first byte. Variable fields are offset/length references into the pool.
"""

import copy
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional

from ..checksum import Checksum, get_checksum
from ..config import Config
from ..errors import (
    BadMagic,
    DanglingReference,
    DuplicateRecordId,
    MalformedRecord,
    OutOfBounds,
    RecordNotFound,
    UnsupportedVersion,
)
from ..io.binary_stream import BinaryWriter
from ..io.opaque import OpaqueRegion
from ..records.base import TitleRecord, get_codec
from ..utils.string_utils import escape_bytes
from .document import BinaryDocument
from .string_pool import StringPool
from .vcdb_structures import VCDB_MAGIC, VCDB_VERSION, RecordIndexEntry, VcDbHeader

log = logging.getLogger(__name__)

INDEX = 'index'
RECORD = 'record'
POOL = 'pool'

# Fields back-filled once the new layout is known
HEADER_INDEX_OFFSET = 0x0C
HEADER_POOL_OFFSET = 0x10
HEADER_POOL_LENGTH = 0x14
INDEX_ENTRY_OFFSET = 0x04


@dataclass
class LayoutSlot:
    """
    One structure of the file in on-disk order.

    Attributes:
        kind: INDEX, RECORD or POOL
        record_id: Record id for RECORD slots
        gap: Bytes between the previous structure and this one
    """
    kind: str
    record_id: Optional[int] = None
    gap: OpaqueRegion = field(default_factory=OpaqueRegion.empty)


class VcDatabaseDocument(BinaryDocument):
    """
    Parser for VC database files.

    Attributes:
        header: The file header
        index: Record index entries in on-disk order
        records: Title records by id, in index order
        pool: The string pool as stored in the file
        pool_region: The pool's bytes as an OpaqueRegion of the source
        layout: Index, records and pool in on-disk order, each with the
            unmodeled bytes in front of it
        trailer: Unmodeled bytes between the last structure and the checksum
    """

    KIND = 'vcdb'

    def __init__(self, data: bytes, config: Optional[Config] = None):
        """
        Parse a VC database file.

        Args:
            data: Raw bytes of the file
            config: Parse options

        Raises:
            ParseError: If the file is structurally invalid
        """
        super().__init__(data, config)

        self.header = self._read_header()
        self.pool_region = self._read_pool()
        self.pool = StringPool(self.pool_region.data)
        self.index = self._read_index()

        self.records: Dict[int, TitleRecord] = {}
        for entry in self.index:
            self.records[entry.record_id] = self._read_record(entry)

        self.layout, self.trailer = self._read_layout()
        self._verify_checksum()
        log.debug("Parsed VC database: %d records, pool %d bytes", len(self.records), len(self.pool))

    def checksum_algorithm(self) -> Checksum:
        return get_checksum(self.config.vcdb_checksum)

    def _read_header(self) -> VcDbHeader:
        header = self.read_class(VcDbHeader, 0)

        if header.magic != VCDB_MAGIC:
            raise BadMagic(
                "Invalid VC database: wrong magic",
                offset=0,
                expected=escape_bytes(VCDB_MAGIC),
                found=escape_bytes(header.magic)
            )
        if header.version != VCDB_VERSION:
            raise UnsupportedVersion(
                f"VC database version {header.version} is not supported",
                offset=0x04,
                expected=VCDB_VERSION,
                found=header.version
            )
        return header

    def _read_pool(self) -> OpaqueRegion:
        h = self.header
        if h.pool_offset + h.pool_length > self.payload_end:
            raise OutOfBounds(h.pool_offset, h.pool_length, self.payload_end)
        return OpaqueRegion(self.buffer, h.pool_offset, h.pool_length)

    def _read_index(self) -> List[RecordIndexEntry]:
        index = self.read_class_array(
            RecordIndexEntry, self.header.index_offset, self.header.record_count
        )

        entry_size = self.size_of(RecordIndexEntry)
        seen = set()
        for i, entry in enumerate(index):
            if entry.record_id in seen:
                raise DuplicateRecordId(
                    f"record id {entry.record_id} appears twice",
                    offset=self.header.index_offset + i * entry_size,
                    found=entry.record_id
                )
            seen.add(entry.record_id)
        return index

    def _read_record(self, entry: RecordIndexEntry) -> TitleRecord:
        if entry.offset + entry.length > self.payload_end:
            raise DanglingReference(
                f"record {entry.record_id} outside buffer",
                offset=entry.offset,
                expected=f"end <= 0x{self.payload_end:x}",
                found=f"0x{entry.offset + entry.length:x}"
            )
        if entry.length == 0:
            raise MalformedRecord(
                f"record {entry.record_id} is empty",
                offset=entry.offset,
                found=0
            )

        codec = get_codec(self.read_byte(entry.offset))
        return codec.decode(
            self,
            entry.offset,
            entry.length,
            self.pool,
            record_id=entry.record_id,
            encoding=self.config.text_encoding
        )

    def _read_layout(self):
        """
        Order the index, records and pool by offset and capture the gaps.

        Overlapping structures get an empty gap.

        Returns:
            Tuple of (layout slots, trailer region)
        """
        h = self.header
        index_end = h.index_offset + len(self.index) * self.size_of(RecordIndexEntry)
        spans = [
            (h.index_offset, index_end, INDEX, None),
            (h.pool_offset, h.pool_offset + h.pool_length, POOL, None),
        ]
        spans += [(e.offset, e.offset + e.length, RECORD, e.record_id) for e in self.index]
        spans.sort(key=lambda s: (s[0], s[1]))

        layout = []
        prev_end = self.size_of(VcDbHeader)
        for start, end, kind, record_id in spans:
            gap = OpaqueRegion(self.buffer, prev_end, max(0, start - prev_end))
            layout.append(LayoutSlot(kind, record_id, gap))
            prev_end = max(prev_end, end)

        trailer = OpaqueRegion(self.buffer, prev_end, max(0, self.payload_end - prev_end))
        return layout, trailer

    # ========== Public API ==========

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[TitleRecord]:
        return iter(self.records.values())

    def __contains__(self, record_id: int) -> bool:
        return record_id in self.records

    @property
    def ids(self) -> List[int]:
        return list(self.records)

    def record(self, record_id: int) -> TitleRecord:
        """
        Get a record by id.

        Raises:
            RecordNotFound: If there is no such record
        """
        try:
            return self.records[record_id]
        except KeyError:
            raise RecordNotFound(f"no record with id {record_id}", found=record_id) from None

    def records_for(self, platform: int) -> List[TitleRecord]:
        """All records of one platform, in index order."""
        return [r for r in self.records.values() if r.platform == platform]

    # ========== Serialization ==========

    def _rebuild(self) -> bytes:
        """
        Write the index, records and pool back in on-disk order.

        The bytes in front of each structure and after the last one are
        copied from the source. A removed record leaves its leading gap
        behind; added records follow the last stored record. The index lists
        records in index order and their strings are pooled in first-use
        order. Offsets that move are back-filled once everything is written.
        """
        pool = StringPool(dedupe=self.config.dedupe_strings)
        encoded = {
            record.record_id: get_codec(record.platform).encode(record, pool)
            for record in self.records.values()
        }

        layout = list(self.layout)
        stored = {slot.record_id for slot in layout if slot.kind == RECORD}
        added = [LayoutSlot(RECORD, rid) for rid in encoded if rid not in stored]
        if added:
            anchor = max(i for i, slot in enumerate(layout) if slot.kind in (INDEX, RECORD))
            layout[anchor + 1:anchor + 1] = added

        entry_size = self.size_of(RecordIndexEntry)
        writer = BinaryWriter(self.endian)
        writer.write_class(replace(self.header, record_count=len(encoded)))

        index_offset = pool_offset = 0
        offsets = {}
        for slot in layout:
            writer.write_bytes(slot.gap.data)
            if slot.kind == INDEX:
                index_offset = writer.position
                for record_id, data in encoded.items():
                    writer.write_class(RecordIndexEntry(record_id=record_id, offset=0, length=len(data)))
            elif slot.kind == POOL:
                pool_offset = writer.position
                writer.write_bytes(pool.getvalue())
            elif slot.record_id in encoded:
                offsets[slot.record_id] = writer.write_bytes(encoded[slot.record_id])
        writer.write_bytes(self.trailer.data)

        for i, record_id in enumerate(encoded):
            writer.patch_uint32(index_offset + i * entry_size + INDEX_ENTRY_OFFSET, offsets[record_id])
        writer.patch_uint32(HEADER_INDEX_OFFSET, index_offset)
        writer.patch_uint32(HEADER_POOL_OFFSET, pool_offset)
        writer.patch_uint32(HEADER_POOL_LENGTH, len(pool))
        return writer.getvalue()

    def clone(self) -> 'VcDatabaseDocument':
        doc = copy.copy(self)
        doc.header = replace(self.header)
        doc.index = [replace(entry) for entry in self.index]
        doc.records = copy.deepcopy(self.records)
        doc.dirty = set(self.dirty)
        doc._session = None
        return doc


def parse_vc_database(data: bytes, config: Optional[Config] = None) -> VcDatabaseDocument:
    """Parse a VC database file."""
    return VcDatabaseDocument(data, config)
