"""
Binary IO Tests - bounds-checked reads, in-place writes, struct layouts, opaque regions.
"""

import struct
from dataclasses import dataclass

import pytest

from vc_codec.errors import OutOfBounds, SerializeError
from vc_codec.io import (
    BinaryStream, BinaryWriter, OpaqueRegion,
    array_field, pack_class, struct_layout, ubyte_field, uint_field, ushort_field,
)


@dataclass
class Sample:
    tag: int = ubyte_field()
    count: int = ushort_field()
    size: int = uint_field()
    name: bytes = array_field(4)


# =============================================================================
# BinaryStream reads
# =============================================================================

class TestBinaryStreamReads:

    def test_read_primitives_little_endian(self):
        stream = BinaryStream(b'\x01\x02\x03\x04\x05\x06\x07')
        assert stream.read_byte() == 0x01
        assert stream.read_uint16() == 0x0302
        assert stream.read_uint32() == 0x07060504
        assert stream.position == 7
        assert stream.remaining == 0

    def test_read_big_endian(self):
        stream = BinaryStream(b'\x00\x00\x01\x00', '>')
        assert stream.read_uint32() == 0x100

    def test_read_uint24(self):
        stream = BinaryStream(b'\x10\x20\x30')
        assert stream.read_uint24(0) == 0x302010

    def test_read_at_address_moves_position(self):
        stream = BinaryStream(bytes(range(16)))
        assert stream.read_uint16(8) == 0x0908
        assert stream.position == 10

    def test_read_past_end_raises(self):
        stream = BinaryStream(b'\x00' * 6)
        with pytest.raises(OutOfBounds) as exc:
            stream.read_uint32(4)
        assert exc.value.offset == 4
        assert exc.value.size == 4
        assert exc.value.length == 6

    def test_negative_offset_raises(self):
        stream = BinaryStream(b'\x00' * 6)
        with pytest.raises(OutOfBounds):
            stream.read_bytes(2, -1)

    def test_invalid_endian(self):
        with pytest.raises(ValueError):
            BinaryStream(b'', 'x')

    def test_slice_is_bounds_checked(self):
        stream = BinaryStream(bytes(range(8)))
        view = stream.slice(2, 4)
        assert view.length == 4
        assert view.read_byte(0) == 2
        with pytest.raises(OutOfBounds):
            stream.slice(6, 4)


# =============================================================================
# BinaryStream writes
# =============================================================================

class TestBinaryStreamWrites:

    def test_write_requires_bytearray(self):
        stream = BinaryStream(b'\x00' * 4)
        with pytest.raises(TypeError):
            stream.write_uint32(1, 0)

    def test_write_in_place(self):
        buf = bytearray(8)
        stream = BinaryStream(buf)
        stream.write_uint32(0xAABBCCDD, 4)
        assert bytes(buf[4:]) == b'\xdd\xcc\xbb\xaa'

    def test_write_never_grows_buffer(self):
        buf = bytearray(4)
        stream = BinaryStream(buf)
        with pytest.raises(OutOfBounds):
            stream.write_uint32(1, 2)
        assert len(buf) == 4
        assert buf == bytearray(4)

    def test_write_value_too_large(self):
        stream = BinaryStream(bytearray(2))
        with pytest.raises(SerializeError):
            stream.write_byte(0x100, 0)


# =============================================================================
# Structures
# =============================================================================

class TestStructures:

    def test_layout_is_packed(self):
        fmt, names, size = struct_layout(Sample)
        assert fmt == '<BHI4s'
        assert names == ['tag', 'count', 'size', 'name']
        assert size == 11

    def test_read_class(self):
        data = struct.pack('<BHI4s', 7, 300, 70000, b'ABCD')
        sample = BinaryStream(data).read_class(Sample, 0)
        assert sample == Sample(tag=7, count=300, size=70000, name=b'ABCD')

    def test_read_class_array_checks_whole_range(self):
        data = struct.pack('<BHI4s', 1, 2, 3, b'WXYZ')
        stream = BinaryStream(data)
        with pytest.raises(OutOfBounds):
            stream.read_class_array(Sample, 0, 2)
        assert stream.read_class_array(Sample, 0, 0) == []

    def test_pack_class_round_trip(self):
        sample = Sample(tag=1, count=2, size=3, name=b'NAME')
        data = pack_class(sample)
        assert BinaryStream(data).read_class(Sample) == sample

    def test_pack_class_out_of_range(self):
        with pytest.raises(SerializeError):
            pack_class(Sample(tag=256))

    def test_non_dataclass_rejected(self):
        with pytest.raises(TypeError):
            struct_layout(int)


# =============================================================================
# BinaryWriter
# =============================================================================

class TestBinaryWriter:

    def test_appends_and_returns_offsets(self):
        writer = BinaryWriter()
        assert writer.write_uint32(1) == 0
        assert writer.write_byte(2) == 4
        assert writer.write_uint16(3) == 5
        assert writer.position == 7
        assert writer.getvalue() == b'\x01\x00\x00\x00\x02\x03\x00'

    def test_uint24_overflow(self):
        writer = BinaryWriter()
        with pytest.raises(SerializeError):
            writer.write_uint24(0x1000000)

    def test_patch_uint32(self):
        writer = BinaryWriter()
        writer.write_uint32(0)
        writer.write_bytes(b'tail')
        writer.patch_uint32(0, 0x11223344)
        assert writer.getvalue() == b'\x44\x33\x22\x11tail'
        assert writer.position == 8

    def test_patch_outside_written_range(self):
        writer = BinaryWriter()
        writer.write_uint16(0)
        with pytest.raises(OutOfBounds):
            writer.patch_uint32(0, 1)


# =============================================================================
# OpaqueRegion
# =============================================================================

class TestOpaqueRegion:

    def test_region_of_source(self):
        source = b'0123456789'
        region = OpaqueRegion(source, 2, 3)
        assert len(region) == 3
        assert region.data == b'234'
        assert bytes(region) == b'234'
        assert not region.is_replaced

    def test_region_outside_source(self):
        with pytest.raises(ValueError):
            OpaqueRegion(b'abc', 2, 5)

    def test_replacement_bytes(self):
        region = OpaqueRegion.from_bytes(b'new')
        assert region.is_replaced
        assert region.offset is None
        assert region == b'new'

    def test_equality_by_content(self):
        assert OpaqueRegion(b'xxabc', 2, 3) == OpaqueRegion.from_bytes(b'abc')
        assert OpaqueRegion.empty() == b''
