"""
Common base for parsed documents.

Both formats end in a u32 checksum over every preceding byte and both
serialize the same way: an unmodified document writes back its source bytes,
a modified one is rebuilt by the subclass. The checksum is recomputed in
either case.
"""

import logging
import struct
from abc import ABC, abstractmethod
from typing import Optional, Set

from ..checksum import Checksum, get_checksum
from ..config import Config
from ..errors import ChecksumMismatch, MalformedHeader
from ..io.binary_stream import BinaryStream

log = logging.getLogger(__name__)

CHECKSUM_SIZE = 4


class BinaryDocument(BinaryStream, ABC):
    """
    A parsed document over an immutable source buffer.

    Subclasses parse in their constructor (after calling this one) and
    implement _rebuild().

    Attributes:
        config: Options the document was parsed with
        checksum: Checksum stored in the file
        checksum_valid: Whether the stored checksum matched
        checksum_error: The mismatch, if any, as an unraised ChecksumMismatch
        dirty: Identifiers of edited fields; empty for an unmodified document
    """

    KIND = ''
    MIN_SIZE = CHECKSUM_SIZE

    def __init__(self, data: bytes, config: Optional[Config] = None):
        super().__init__(bytes(data), '<')
        self.config = config or Config()
        self.checksum = 0
        self.checksum_valid = True
        self.checksum_error: Optional[ChecksumMismatch] = None
        self.dirty: Set[str] = set()
        self._session = None

        if self.length < self.MIN_SIZE:
            raise MalformedHeader(
                f"{self.KIND} file too short",
                expected=f">= {self.MIN_SIZE} bytes",
                found=self.length
            )

    # ========== Checksum ==========

    @abstractmethod
    def checksum_algorithm(self) -> Checksum:
        """The checksum strategy configured for this document kind."""

    @property
    def payload_end(self) -> int:
        """Offset of the trailing checksum field."""
        return self.length - CHECKSUM_SIZE

    def _verify_checksum(self) -> None:
        """
        Compare the stored checksum with the computed one.

        A mismatch is logged and recorded on the document; it is only raised
        when the strict_checksum option is set.
        """
        self.checksum = self.read_uint32(self.payload_end)
        computed = self.checksum_algorithm().compute(self.buffer[:self.payload_end])
        self.checksum_valid = computed == self.checksum
        if self.checksum_valid:
            return

        error = ChecksumMismatch(
            f"{self.KIND} checksum mismatch",
            offset=self.payload_end,
            expected=f"0x{computed:08x}",
            found=f"0x{self.checksum:08x}"
        )
        if self.config.strict_checksum:
            raise error
        log.warning("%s", error)
        self.checksum_error = error

    # ========== Serialization ==========

    @property
    def modified(self) -> bool:
        return bool(self.dirty)

    def is_dirty(self, *prefixes: str) -> bool:
        """True if an edited field identifier starts with one of the prefixes."""
        return any(item.split('.', 1)[0] in prefixes for item in self.dirty)

    def to_bytes(self) -> bytes:
        """
        Serialize the document.

        Unmodified documents reproduce their source bytes; the checksum is
        always recomputed.
        """
        if self.modified:
            body = self._rebuild()
        else:
            body = bytes(self.buffer[:self.payload_end])
        checksum = self.checksum_algorithm().compute(body)
        return body + struct.pack(self.endian + 'I', checksum)

    @abstractmethod
    def _rebuild(self) -> bytes:
        """Encode a modified document, without the checksum."""

    @abstractmethod
    def clone(self) -> 'BinaryDocument':
        """Copy the model for editing; the source buffer is shared."""
