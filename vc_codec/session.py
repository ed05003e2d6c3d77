"""
Edit sessions.

A session is the only way to change a parsed document. It works on a clone,
so the document it was opened on stays exactly as parsed, and hands back
the re-serialized bytes on commit. Each document allows one open session
at a time.
"""

import logging
from dataclasses import replace
from enum import Enum
from typing import Any, Dict, Optional, Set, Union

from .errors import (
    AlreadyFinalized,
    DuplicateRecordId,
    InvalidFieldValue,
    SessionError,
)
from .formats.document import BinaryDocument
from .formats.sfrom import SfromDocument
from .formats.sfrom_structures import SectionKind, SfromHeader
from .formats.vcdb import VcDatabaseDocument
from .io.opaque import OpaqueRegion
from .records.base import Platform, field_by_name, get_codec, resolve_platform, validate_domain

log = logging.getLogger(__name__)

MAX_RECORD_ID = 0xFFFFFFFF

# Metadata footer field that mirrors each section's length
SECTION_SIZE_FIELDS = {
    SectionKind.ROM: 'rom_size',
    SectionKind.PCM_SAMPLES: 'pcm_samples_size',
    SectionKind.PCM_FOOTER: 'pcm_footer_size',
}


class SessionState(Enum):
    OPEN = 'open'
    COMMITTED = 'committed'
    DISCARDED = 'discarded'


class EditSession:
    """
    Exclusive edit session over one document.

    Use EditSession.open() to get the session type matching the document.

    Attributes:
        source: The document the session was opened on (never modified)
        document: The working copy all mutations apply to
        state: Current SessionState
        dirty: Identifiers of the fields changed so far
    """

    def __init__(self, document: BinaryDocument):
        if document._session is not None:
            raise SessionError(f"{document.KIND} document already has an open edit session")

        self.source = document
        self.document = document.clone()
        self.state = SessionState.OPEN
        self.dirty: Set[str] = self.document.dirty
        document._session = self
        log.debug("Opened %s edit session", document.KIND)

    @staticmethod
    def open(document: BinaryDocument) -> 'EditSession':
        """
        Open a session on a document.

        Raises:
            SessionError: If the document already has an open session
            TypeError: If the document type has no session
        """
        if isinstance(document, VcDatabaseDocument):
            return VcDatabaseSession(document)
        if isinstance(document, SfromDocument):
            return SfromSession(document)
        raise TypeError(f"cannot edit {type(document).__name__}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if self.state is SessionState.OPEN:
            self.discard()
        return False

    # ========== Lifecycle ==========

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.OPEN

    def _check_open(self) -> None:
        if self.state is not SessionState.OPEN:
            raise AlreadyFinalized(f"session already {self.state.value}")

    def _mark(self, item: str) -> None:
        self.dirty.add(item)

    def commit(self) -> bytes:
        """
        Serialize the working copy.

        Returns:
            The new file bytes, with a recomputed checksum

        Raises:
            AlreadyFinalized: If the session was committed or discarded
            SerializeError: If a value cannot be written; the session stays open
        """
        self._check_open()
        data = self.document.to_bytes()

        self.state = SessionState.COMMITTED
        self.source._session = None
        log.debug("Committed %s session: %d change(s), %d bytes", self.source.KIND, len(self.dirty), len(data))
        return data

    def discard(self) -> None:
        """Drop all changes and release the document."""
        self._check_open()
        self.state = SessionState.DISCARDED
        self.source._session = None
        log.debug("Discarded %s session with %d change(s)", self.source.KIND, len(self.dirty))


class VcDatabaseSession(EditSession):
    """Edits to a VC database: record fields, added and removed records."""

    document: VcDatabaseDocument

    def set_field(self, record_id: int, name: str, value: Any) -> None:
        """
        Set one field of a record.

        Raises:
            RecordNotFound: If there is no such record
            InvalidFieldValue: If the field is unknown or the value invalid
        """
        self._check_open()
        record = self.document.record(record_id)
        get_codec(record.platform).set_field(record, name, value)
        self._mark(f"record.{record_id}.{name}")

    def add_record(
        self,
        platform: Union[Platform, int, str],
        initial_fields: Optional[Dict[str, Any]] = None,
        record_id: Optional[int] = None
    ) -> int:
        """
        Append a new record built from the platform defaults.

        Args:
            platform: Platform enum, tag or name
            initial_fields: Field values overriding the defaults
            record_id: Id to use; defaults to one past the highest id

        Returns:
            The new record's id

        Raises:
            UnsupportedPlatform: If no codec handles the platform
            InvalidFieldValue: If an initial value is invalid
            DuplicateRecordId: If record_id is already taken
        """
        self._check_open()
        codec = get_codec(resolve_platform(platform))
        records = self.document.records

        if record_id is None:
            record_id = max(records, default=0) + 1
        if not isinstance(record_id, int) or not 0 <= record_id <= MAX_RECORD_ID:
            raise InvalidFieldValue("record id out of range", expected=(0, MAX_RECORD_ID), found=record_id)
        if record_id in records:
            raise DuplicateRecordId(f"record id {record_id} already in use", found=record_id)

        record = codec.new_record(record_id, initial_fields, self.document.config.text_encoding)
        records[record_id] = record
        self._mark(f"record.{record_id}")
        log.debug("Added %s record %d", codec.name, record_id)
        return record_id

    def remove_record(self, record_id: int) -> None:
        """
        Remove a record.

        Raises:
            RecordNotFound: If there is no such record
        """
        self._check_open()
        self.document.record(record_id)
        del self.document.records[record_id]
        self._mark(f"record.{record_id}")


class SfromSession(EditSession):
    """Edits to an SFROM: metadata fields, game tags, the game id and sections."""

    document: SfromDocument

    def set_field(self, name: str, value: Any) -> None:
        """
        Set a metadata field, or the header game_id.

        Raises:
            InvalidFieldValue: If the field is unknown or the value invalid
            UnsupportedPlatform: If the platform has no metadata layout
        """
        self._check_open()
        doc = self.document

        if name == 'game_id':
            if isinstance(value, str):
                try:
                    value = value.encode('ascii').ljust(8, b'\x00')
                except UnicodeEncodeError as e:
                    raise InvalidFieldValue(f"game_id cannot be encoded as ascii: {e}", found=value)
            stored = validate_domain(field_by_name(SfromHeader, 'game_id'), value)
            doc.header = replace(doc.header, game_id=stored)
            self._mark('header.game_id')
            return

        doc.codec.set_metadata_field(doc.metadata, name, value)
        self._mark(f"metadata.{name}")

    def set_tag(self, letter: str, payload: bytes) -> None:
        """
        Add a game tag or replace its payload.

        Raises:
            InvalidFieldValue: If the letter is unknown or the payload size wrong
        """
        self._check_open()
        self.document.metadata.tags.set(letter, payload)
        self._mark(f"tag.{letter}")

    def remove_tag(self, letter: str) -> None:
        """
        Remove a game tag.

        Raises:
            InvalidFieldValue: If the tag is not present
        """
        self._check_open()
        self.document.metadata.tags.remove(letter)
        self._mark(f"tag.{letter}")

    def replace_section(self, kind: Union[SectionKind, int], data: bytes) -> None:
        """
        Replace the bytes of an existing section.

        The matching size field of the metadata footer follows the new
        length. The metadata section itself is edited through set_field and
        set_tag.

        Raises:
            InvalidFieldValue: If the section is the metadata, is missing, or
                its new length does not fit the size field
        """
        self._check_open()
        doc = self.document

        if kind == SectionKind.METADATA:
            raise InvalidFieldValue("metadata section is edited through fields and tags", found=int(kind))
        if kind not in doc.contents:
            raise InvalidFieldValue(
                "no such section",
                expected=sorted(int(k) for k in doc.contents),
                found=int(kind)
            )

        data = bytes(data)
        size_field = SECTION_SIZE_FIELDS.get(kind)
        if size_field is not None:
            doc.codec.set_metadata_field(doc.metadata, size_field, len(data))
            self._mark(f"metadata.{size_field}")

        doc.contents[kind] = OpaqueRegion.from_bytes(data)
        self._mark(f"section.{doc.section(kind).kind_name}")
        log.debug("Replaced %s section: %d bytes", doc.section(kind).kind_name, len(data))
