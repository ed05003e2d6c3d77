"""
Abstract base class for platform record codecs.

A RecordCodec knows one platform's title record layout in the VC database
and, where the platform has one, its SFROM metadata layout. Codecs are
registered by platform tag and always selected by the tag stored in the
file, never by the shape of the data.
"""

from abc import ABC
from dataclasses import dataclass, field, fields, replace
from enum import IntEnum
from typing import Any, Dict, List, Optional, Type, Union

from ..errors import InvalidFieldValue, MalformedRecord, UnsupportedPlatform
from ..formats.string_pool import StringPool
from ..formats.vcdb_structures import StringRef
from ..io.binary_stream import BinaryStream, BinaryWriter, struct_layout
from ..io.opaque import OpaqueRegion
from ..io.struct_fields import field_domain


class Platform(IntEnum):
    """Platform tags stored in both formats."""
    GBA = 1
    SNES = 2


@dataclass
class TitleRecord:
    """
    One title of a VC database.

    Attributes:
        record_id: Id from the record index
        platform: Platform tag
        fields: Platform fixed-field dataclass instance
        strings: Variable fields, resolved to raw bytes
        opaque: Bytes after the known layout, kept verbatim
        refs: Pool references as read from the file (empty for new records)
        offset: Where the record was read from, if parsed
        length: Original record length, if parsed
    """
    record_id: int
    platform: int
    fields: Any
    strings: Dict[str, bytes]
    opaque: OpaqueRegion = field(default_factory=OpaqueRegion.empty)
    refs: Dict[str, StringRef] = field(default_factory=dict)
    offset: Optional[int] = None
    length: Optional[int] = None
    encoding: str = 'utf-8'

    def get(self, name: str) -> Any:
        """Get a fixed field value or a decoded string field."""
        if name in self.strings:
            return self.strings[name].decode(self.encoding, errors='replace')
        if hasattr(self.fields, name):
            return getattr(self.fields, name)
        raise KeyError(name)

    @property
    def title(self) -> str:
        return self.get('title')


_CODECS: Dict[int, 'RecordCodec'] = {}


def register_codec(cls: Type['RecordCodec']) -> Type['RecordCodec']:
    """Register a codec class under its platform tag. Usable as a decorator."""
    _CODECS[int(cls.platform)] = cls()
    return cls


def registered_platforms() -> List[int]:
    return sorted(_CODECS)


def resolve_platform(value: Union[Platform, int, str]) -> int:
    """
    Turn a platform given as enum, tag or name into a registered tag.

    Raises:
        UnsupportedPlatform: If no codec handles the platform
    """
    tag = None
    if isinstance(value, str):
        name = value.upper()
        if name == 'SFC':
            name = 'SNES'
        if name in Platform.__members__:
            tag = int(Platform[name])
    elif isinstance(value, int):
        tag = int(value)

    if tag is None or tag not in _CODECS:
        raise UnsupportedPlatform(
            "no record codec for platform",
            expected=registered_platforms(),
            found=value
        )
    return tag


def get_codec(platform: Union[Platform, int, str]) -> 'RecordCodec':
    """Get the registered codec for a platform."""
    return _CODECS[resolve_platform(platform)]


class RecordCodec(ABC):
    """
    Platform-specific title record layout.

    Subclasses set:
    - platform: the tag this codec is registered under
    - fixed_type: dataclass of the fixed fields following the tag byte
    - string_fields: variable fields in on-disk order, mapped to their
      maximum encoded length

    Platforms with an SFROM metadata layout also override decode_metadata,
    encode_metadata and validate_metadata.
    """

    platform: Platform
    fixed_type: type
    string_fields: Dict[str, int] = {}

    def __init__(self, endian: str = '<'):
        self.endian = endian

    @property
    def name(self) -> str:
        return getattr(self.platform, 'name', f"platform {int(self.platform)}")

    @property
    def fixed_size(self) -> int:
        """Size of the tag byte, fixed fields and pool references."""
        ref_size = struct_layout(StringRef, self.endian)[2]
        fixed = struct_layout(self.fixed_type, self.endian)[2]
        return 1 + fixed + ref_size * len(self.string_fields)

    def field_names(self) -> List[str]:
        return [f.name for f in fields(self.fixed_type)] + list(self.string_fields)

    # ========== Record Decoding ==========

    def decode(
        self,
        stream: BinaryStream,
        offset: int,
        length: int,
        pool: StringPool,
        record_id: int = 0,
        encoding: str = 'utf-8'
    ) -> TitleRecord:
        """
        Decode one record.

        Args:
            stream: Stream over the whole database buffer
            offset: Record start
            length: Record length from the index
            pool: String pool the references resolve into
            record_id: Id from the index entry
            encoding: Text encoding of the string fields

        Raises:
            MalformedRecord: If the record is shorter than the platform layout
            DanglingReference: If a string reference leaves the pool
        """
        if length < self.fixed_size:
            raise MalformedRecord(
                f"{self.name} record {record_id} too short",
                offset=offset,
                expected=self.fixed_size,
                found=length
            )

        stream.position = offset + 1
        fixed = stream.read_class(self.fixed_type)
        ref_list = stream.read_class_array(StringRef, count=len(self.string_fields))
        refs = dict(zip(self.string_fields, ref_list))
        strings = {name: pool.resolve(ref) for name, ref in refs.items()}

        tail = offset + self.fixed_size
        return TitleRecord(
            record_id=record_id,
            platform=int(self.platform),
            fields=fixed,
            strings=strings,
            opaque=OpaqueRegion(stream.buffer, tail, length - self.fixed_size),
            refs=refs,
            offset=offset,
            length=length,
            encoding=encoding,
        )

    def encode(self, record: TitleRecord, pool: StringPool) -> bytes:
        """Encode a record, adding its strings to the pool."""
        writer = BinaryWriter(self.endian)
        writer.write_byte(int(self.platform))
        writer.write_class(record.fields)
        for name in self.string_fields:
            writer.write_class(pool.add(record.strings.get(name, b'')))
        writer.write_bytes(record.opaque.data)
        return writer.getvalue()

    # ========== Edits ==========

    def validate(self, name: str, value: Any, encoding: str = 'utf-8') -> Any:
        """
        Check a value against a field's domain.

        Returns:
            The value in stored form (bytes for strings, int for fixed fields)

        Raises:
            InvalidFieldValue: If the field is unknown or the value out of range
        """
        if name in self.string_fields:
            return _validate_string(name, value, self.string_fields[name], encoding)
        return _validate_fixed(self.fixed_type, name, value)

    def set_field(self, record: TitleRecord, name: str, value: Any) -> None:
        """Validate and store one field value on a record."""
        stored = self.validate(name, value, record.encoding)
        if name in self.string_fields:
            record.strings[name] = stored
        else:
            record.fields = replace(record.fields, **{name: stored})

    def new_record(
        self,
        record_id: int,
        initial_fields: Optional[Dict[str, Any]] = None,
        encoding: str = 'utf-8'
    ) -> TitleRecord:
        """
        Build a record from defaults plus initial values.

        Every value is validated before the record is built, so a bad value
        leaves nothing half-constructed.
        """
        initial = self.initial_values(dict(initial_fields or {}))
        validated = {name: self.validate(name, value, encoding) for name, value in initial.items()}

        fixed_values = {k: v for k, v in validated.items() if k not in self.string_fields}
        strings = {name: validated.get(name, b'') for name in self.string_fields}
        return TitleRecord(
            record_id=record_id,
            platform=int(self.platform),
            fields=self.fixed_type(**fixed_values),
            strings=strings,
            encoding=encoding,
        )

    def initial_values(self, initial: Dict[str, Any]) -> Dict[str, Any]:
        """Hook for platforms that derive defaults from other initial values."""
        return initial

    # ========== SFROM Metadata ==========

    def decode_metadata(self, source: bytes, offset: int, length: int) -> Any:
        """Decode the SFROM metadata section for this platform."""
        raise UnsupportedPlatform(
            f"{self.name} has no SFROM metadata layout",
            found=int(self.platform)
        )

    def encode_metadata(self, metadata: Any) -> bytes:
        raise UnsupportedPlatform(
            f"{self.name} has no SFROM metadata layout",
            found=int(self.platform)
        )

    def validate_metadata(self, name: str, value: Any) -> Any:
        raise UnsupportedPlatform(
            f"{self.name} has no SFROM metadata layout",
            found=int(self.platform)
        )

    def set_metadata_field(self, metadata: Any, name: str, value: Any) -> None:
        raise UnsupportedPlatform(
            f"{self.name} has no SFROM metadata layout",
            found=int(self.platform)
        )


def _validate_string(name: str, value: Any, max_length: int, encoding: str) -> bytes:
    if isinstance(value, str):
        try:
            value = value.encode(encoding)
        except UnicodeEncodeError as e:
            raise InvalidFieldValue(f"{name} cannot be encoded as {encoding}: {e}")
    elif isinstance(value, (bytes, bytearray)):
        value = bytes(value)
    else:
        raise InvalidFieldValue(f"{name} must be a string", expected='str', found=value)

    if len(value) > max_length:
        raise InvalidFieldValue(
            f"{name} too long",
            expected=f"<= {max_length} bytes",
            found=len(value)
        )
    return value


def _validate_fixed(fixed_type: type, name: str, value: Any) -> Any:
    field_info = field_by_name(fixed_type, name)
    if field_info is None:
        raise InvalidFieldValue(f"unknown field {name!r}")
    return validate_domain(field_info, value)


def validate_domain(field_info, value: Any) -> Any:
    """Check a value against the domain recorded on a struct field."""
    name = field_info.name
    domain = field_domain(field_info)

    if 'array_length' in domain:
        length = domain['array_length']
        if not isinstance(value, (bytes, bytearray)) or len(value) != length:
            raise InvalidFieldValue(
                f"{name} must be exactly {length} bytes",
                expected=length,
                found=value
            )
        return bytes(value)

    if not isinstance(value, int):
        raise InvalidFieldValue(f"{name} must be an integer", expected='int', found=value)
    value = int(value)

    choices = domain.get('choices')
    if choices is not None:
        allowed = [int(c) for c in choices]
        if value not in allowed:
            raise InvalidFieldValue(f"{name} not a valid {choices.__name__}", expected=allowed, found=value)
        return value

    if not domain['minimum'] <= value <= domain['maximum']:
        raise InvalidFieldValue(
            f"{name} out of range",
            expected=(domain['minimum'], domain['maximum']),
            found=value
        )
    return value


def field_by_name(fixed_type: type, name: str):
    """Find a dataclass field, or None."""
    return next((f for f in fields(fixed_type) if f.name == name), None)

