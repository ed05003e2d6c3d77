"""
Exception hierarchy for the SFROM and VC database codecs.

Structural problems found while parsing derive from ParseError and carry the
offending offset together with what was expected and what was found.
Problems with a single edit derive from EditError and leave the session
usable.
"""

from typing import Any, Optional


class VcCodecError(Exception):
    """Base class for every error raised by vc_codec."""

    def __init__(
        self,
        message: str,
        offset: Optional[int] = None,
        expected: Any = None,
        found: Any = None
    ):
        self.message = message
        self.offset = offset
        self.expected = expected
        self.found = found
        super().__init__(self._format())

    def _format(self) -> str:
        parts = [self.message]
        if self.offset is not None:
            parts.append(f"at 0x{self.offset:x}")
        if self.expected is not None or self.found is not None:
            parts.append(f"(expected {self.expected!r}, found {self.found!r})")
        return ' '.join(parts)


# ========== Parse Errors ==========

class ParseError(VcCodecError):
    """The input is not a structurally valid document."""


class OutOfBounds(ParseError):
    """A read or write ran past the end of the buffer."""

    def __init__(self, offset: int, size: int, length: int):
        self.size = size
        self.length = length
        super().__init__(
            f"access of {size} byte(s) exceeds buffer of {length} byte(s)",
            offset=offset
        )


class BadMagic(ParseError):
    """The file does not start with the expected magic value."""


class UnsupportedVersion(ParseError):
    """The header declares a format version that is not handled."""


class MalformedHeader(ParseError):
    """A header field is inconsistent with the buffer."""


class MalformedSectionTable(ParseError):
    """An SFROM section table entry is out of range, overlapping or duplicated."""


class MalformedRecord(ParseError):
    """A title record is too short for its platform layout."""


class DanglingReference(ParseError):
    """A record or index entry points outside the string pool or buffer."""


class ChecksumMismatch(ParseError):
    """
    Stored and computed checksums differ.

    Parsing reports this on the document instead of raising it, unless the
    strict_checksum option is set.
    """


# ========== Edit Errors ==========

class EditError(VcCodecError):
    """A single mutation was rejected."""


class InvalidFieldValue(EditError):
    """The value is outside the field's domain, or the field does not exist."""


class RecordNotFound(EditError):
    """No record with the requested id exists."""


class UnsupportedPlatform(ParseError, EditError):
    """The platform tag has no registered record codec."""


class DuplicateRecordId(ParseError, EditError):
    """A record id appears twice in the index, or a new record reuses one."""


# ========== Session Errors ==========

class SessionError(VcCodecError):
    """The document already has an open edit session."""


class AlreadyFinalized(SessionError):
    """The session was already committed or discarded."""


class SerializeError(VcCodecError):
    """The edited model cannot be written back."""
