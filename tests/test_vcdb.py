"""
VC Database Tests - parsing, structural errors, checksum, serialization.
"""

import struct

import pytest

from vc_codec import Config, parse_vc_database
from vc_codec.errors import (
    BadMagic, ChecksumMismatch, DanglingReference, DuplicateRecordId, MalformedHeader,
    MalformedRecord, OutOfBounds, RecordNotFound, UnsupportedPlatform, UnsupportedVersion,
)
from vc_codec.formats.document import BinaryDocument
from vc_codec.records import Platform

from builders import Pool, build_vcdb, crc32, flip_byte, gba_record, two_gba_vcdb


# =============================================================================
# Parsing
# =============================================================================

class TestParse:

    def test_two_records(self, vcdb):
        assert len(vcdb) == 2
        assert vcdb.ids == [1, 2]
        assert vcdb.record(1).title == 'Alpha'
        assert vcdb.record(2).title == 'Bravo'
        assert vcdb.record(2).get('players_count') == 4
        assert vcdb.checksum_valid
        assert vcdb.checksum_error is None

    def test_iteration_and_membership(self, vcdb):
        assert [r.record_id for r in vcdb] == [1, 2]
        assert 1 in vcdb
        assert 3 not in vcdb

    def test_record_not_found(self, vcdb):
        with pytest.raises(RecordNotFound):
            vcdb.record(3)

    def test_mixed_platforms(self, mixed):
        assert [r.record_id for r in mixed.records_for(Platform.GBA)] == [10, 30]
        snes = mixed.records_for(Platform.SNES)
        assert len(snes) == 1
        assert snes[0].get('sort_title') == 'super_beta'
        assert mixed.record(10).opaque == b'\xde\xad\xbe\xef'

    def test_empty_database(self):
        doc = parse_vc_database(build_vcdb([], Pool()))
        assert len(doc) == 0
        assert doc.checksum_valid


# =============================================================================
# Structural errors
# =============================================================================

class TestStructuralErrors:

    def test_too_short(self):
        with pytest.raises(MalformedHeader):
            parse_vc_database(b'VCD')

    def test_truncated_header(self):
        with pytest.raises(OutOfBounds):
            parse_vc_database(b'VCDB\x01\x00\x00\x00\x00\x00')

    def test_bad_magic(self):
        with pytest.raises(BadMagic) as exc:
            parse_vc_database(two_gba_vcdb(magic=b'XXXX'))
        assert exc.value.offset == 0

    def test_unsupported_version(self):
        with pytest.raises(UnsupportedVersion):
            parse_vc_database(two_gba_vcdb(version=2))

    def test_duplicate_record_id(self):
        pool = Pool()
        records = [(4, gba_record(pool)), (4, gba_record(pool, title=b'Other'))]
        with pytest.raises(DuplicateRecordId) as exc:
            parse_vc_database(build_vcdb(records, pool))
        assert exc.value.found == 4

    def test_record_outside_buffer(self):
        pool = Pool()
        record = gba_record(pool)
        data = build_vcdb([(1, record)], pool, index=[(1, 0x2C, 0x1000)])
        with pytest.raises(DanglingReference):
            parse_vc_database(data)

    def test_string_reference_outside_pool(self):
        pool = Pool()
        record = gba_record(pool, title=(0, 0x400))
        with pytest.raises(DanglingReference):
            parse_vc_database(build_vcdb([(1, record)], pool))

    def test_pool_outside_buffer(self):
        with pytest.raises(OutOfBounds):
            parse_vc_database(two_gba_vcdb(pool_length=0x10000))

    def test_record_count_past_buffer(self):
        with pytest.raises(OutOfBounds):
            parse_vc_database(two_gba_vcdb(record_count=0x1000))

    def test_record_shorter_than_layout(self):
        pool = Pool()
        record = gba_record(pool)[:30]
        with pytest.raises(MalformedRecord):
            parse_vc_database(build_vcdb([(1, record)], pool))

    def test_empty_record(self):
        pool = Pool()
        data = build_vcdb([(1, b'')], pool)
        with pytest.raises(MalformedRecord):
            parse_vc_database(data)

    def test_unknown_platform_tag(self):
        pool = Pool()
        record = b'\x09' + gba_record(pool)[1:]
        with pytest.raises(UnsupportedPlatform):
            parse_vc_database(build_vcdb([(1, record)], pool))


# =============================================================================
# Checksum
# =============================================================================

class TestChecksum:

    def test_flipped_byte_flags_mismatch(self, vcdb_bytes):
        doc = parse_vc_database(flip_byte(vcdb_bytes, len(vcdb_bytes) - 10))
        assert not doc.checksum_valid
        assert isinstance(doc.checksum_error, ChecksumMismatch)

    def test_wrong_stored_checksum(self):
        doc = parse_vc_database(two_gba_vcdb(checksum=0x12345678))
        assert not doc.checksum_valid
        assert doc.checksum == 0x12345678

    def test_strict_mode_raises(self, strict_config):
        with pytest.raises(ChecksumMismatch):
            parse_vc_database(two_gba_vcdb(checksum=0), strict_config)

    def test_configured_algorithm(self, vcdb_bytes):
        doc = parse_vc_database(vcdb_bytes, Config(vcdb_checksum='sum32'))
        assert not doc.checksum_valid


# =============================================================================
# Serialization
# =============================================================================

class TestSerialize:

    def test_unmodified_round_trip(self, vcdb, vcdb_bytes):
        assert vcdb.to_bytes() == vcdb_bytes

    def test_mixed_round_trip(self, mixed, mixed_bytes):
        assert mixed.to_bytes() == mixed_bytes

    def test_bad_checksum_is_repaired(self, vcdb_bytes):
        broken = vcdb_bytes[:-4] + b'\x00\x00\x00\x00'
        out = parse_vc_database(broken).to_bytes()
        assert out == vcdb_bytes
        assert struct.unpack('<I', out[-4:])[0] == crc32(out[:-4])

    def test_serialize_twice_is_stable(self, vcdb):
        assert vcdb.to_bytes() == vcdb.to_bytes()

    def test_layout_records_gaps(self):
        data = two_gba_vcdb(padding=b'\xab' * 8, trailer=b'\x01\x02')
        doc = parse_vc_database(data)
        assert [slot.kind for slot in doc.layout] == ['index', 'record', 'record', 'pool']
        assert [slot.record_id for slot in doc.layout[1:3]] == [1, 2]
        assert doc.layout[1].gap.data == b'\xab' * 8
        assert doc.layout[2].gap.data == b''
        assert doc.trailer.data == b'\x01\x02'
        assert doc.to_bytes() == data

    def test_document_base_is_abstract(self, vcdb_bytes):
        with pytest.raises(TypeError):
            BinaryDocument(vcdb_bytes)
