"""
SFROM Tests - header and section table validation, metadata, serialization.
"""

import pytest

from vc_codec import Config, parse_sfrom
from vc_codec.errors import (
    BadMagic, ChecksumMismatch, MalformedHeader, MalformedRecord,
    MalformedSectionTable, UnsupportedPlatform, UnsupportedVersion,
)
from vc_codec.formats.sfrom_structures import SectionKind

from builders import (
    GBA, METADATA, PCM_SAMPLES, ROM, SAMPLE_ROM, SDD1_DATA,
    build_sfrom, flip_byte, simple_sfrom, snes_metadata,
)


# =============================================================================
# Parsing
# =============================================================================

class TestParse:

    def test_simple(self, sfrom):
        assert sfrom.platform == 2
        assert sfrom.game_id == 'CLV-P-AB'
        assert sfrom.rom.data == SAMPLE_ROM
        assert sfrom.rom.offset == sfrom.table_end
        assert not sfrom.has_pcm
        assert sfrom.checksum_valid

    def test_metadata(self, sfrom):
        metadata = sfrom.metadata
        assert metadata.frame_rate == 60
        assert metadata.footer.rom_size == len(SAMPLE_ROM)
        assert metadata.footer.player_count == 2
        assert metadata.tags.preset_id == 0x10A2
        assert metadata.tags.max_players == 2
        assert metadata.opaque == b'\xff\xee\x01'

    def test_pcm_sections(self, pcm_bytes):
        doc = parse_sfrom(pcm_bytes)
        assert doc.has_pcm
        assert doc.section_data(PCM_SAMPLES) == b'\x10\x20' * 64
        assert doc.section_data(SectionKind.PCM_FOOTER) == b'PCMF' * 4
        assert doc.metadata.footer.pcm_samples_size == 128
        assert doc.section_data(SDD1_DATA) is None
        assert doc.section(SDD1_DATA) is None

    def test_sections_in_any_table_order(self):
        rom = SAMPLE_ROM
        metadata = snes_metadata(len(rom))
        table_end = 0x20 + 2 * 12
        table = [
            (table_end + len(rom), len(metadata), METADATA),
            (table_end, len(rom), ROM),
        ]
        doc = parse_sfrom(build_sfrom([(ROM, rom), (METADATA, metadata)], table=table))
        assert doc.rom.data == rom
        assert doc.sections[0].kind == METADATA

    def test_unknown_section_kind_kept(self):
        rom = SAMPLE_ROM
        sections = [(ROM, rom), (9, b'extra'), (METADATA, snes_metadata(len(rom)))]
        data = build_sfrom(sections)
        doc = parse_sfrom(data)
        assert doc.section_data(9) == b'extra'
        assert doc.section(9).kind_name == 'UNKNOWN_9'
        assert doc.to_bytes() == data


# =============================================================================
# Structural errors
# =============================================================================

class TestStructuralErrors:

    def test_bad_magic(self):
        with pytest.raises(BadMagic):
            parse_sfrom(simple_sfrom(magic=0x200))

    def test_unsupported_version(self):
        with pytest.raises(UnsupportedVersion):
            parse_sfrom(simple_sfrom(version=3))

    def test_file_size_mismatch(self):
        with pytest.raises(MalformedHeader):
            parse_sfrom(simple_sfrom(file_size=0x10))

    def test_missing_metadata(self):
        with pytest.raises(MalformedSectionTable, match='METADATA'):
            parse_sfrom(build_sfrom([(ROM, SAMPLE_ROM)]))

    def test_duplicate_kind(self):
        sections = [(ROM, b'a' * 16), (ROM, b'b' * 16), (METADATA, snes_metadata(16))]
        with pytest.raises(MalformedSectionTable, match='duplicate'):
            parse_sfrom(build_sfrom(sections))

    def test_overlapping_sections(self):
        metadata = snes_metadata(64)
        table_end = 0x20 + 2 * 12
        table = [(table_end, 64, ROM), (table_end + 32, len(metadata), METADATA)]
        data = build_sfrom([(ROM, b'r' * 64), (METADATA, metadata)], table=table)
        with pytest.raises(MalformedSectionTable, match='overlaps'):
            parse_sfrom(data)

    def test_section_outside_payload(self):
        metadata = snes_metadata(64)
        table_end = 0x20 + 2 * 12
        table = [(table_end, 0x10000, ROM), (table_end + 64, len(metadata), METADATA)]
        data = build_sfrom([(ROM, b'r' * 64), (METADATA, metadata)], table=table)
        with pytest.raises(MalformedSectionTable):
            parse_sfrom(data)

    def test_section_over_table(self):
        metadata = snes_metadata(64)
        table_end = 0x20 + 2 * 12
        table = [(0x10, 64, ROM), (table_end + 64, len(metadata), METADATA)]
        data = build_sfrom([(ROM, b'r' * 64), (METADATA, metadata)], table=table)
        with pytest.raises(MalformedSectionTable):
            parse_sfrom(data)

    def test_metadata_too_short(self):
        sections = [(ROM, SAMPLE_ROM), (METADATA, b'\x3c\x00\x00')]
        with pytest.raises(MalformedRecord):
            parse_sfrom(build_sfrom(sections))

    def test_gba_has_no_sfrom(self):
        with pytest.raises(UnsupportedPlatform):
            parse_sfrom(simple_sfrom(platform=GBA))

    def test_unknown_platform(self):
        with pytest.raises(UnsupportedPlatform):
            parse_sfrom(simple_sfrom(platform=7))


# =============================================================================
# Checksum
# =============================================================================

class TestChecksum:

    def test_flipped_rom_byte(self, sfrom_bytes):
        doc = parse_sfrom(flip_byte(sfrom_bytes, 0x40))
        assert not doc.checksum_valid
        assert doc.checksum_error.offset == len(sfrom_bytes) - 4

    def test_strict_mode(self, sfrom_bytes, strict_config):
        with pytest.raises(ChecksumMismatch):
            parse_sfrom(flip_byte(sfrom_bytes, 0x40), strict_config)

    def test_crc32_configured(self):
        data = simple_sfrom()
        assert not parse_sfrom(data, Config(sfrom_checksum='crc32')).checksum_valid


# =============================================================================
# Serialization
# =============================================================================

class TestSerialize:

    def test_unmodified_round_trip(self, sfrom, sfrom_bytes):
        assert sfrom.to_bytes() == sfrom_bytes

    def test_pcm_round_trip(self, pcm_bytes):
        assert parse_sfrom(pcm_bytes).to_bytes() == pcm_bytes

    def test_truncated_tag_round_trip(self):
        metadata = snes_metadata(len(SAMPLE_ROM), tags=b'p\x01D\x40\x00\x00ab', tail=b'')
        data = build_sfrom([(ROM, SAMPLE_ROM), (METADATA, metadata)])
        doc = parse_sfrom(data)
        assert doc.metadata.tags.letters() == ['p']
        assert doc.metadata.opaque == b'D\x40\x00\x00ab'
        assert doc.to_bytes() == data

    def test_checksum_recomputed(self, sfrom_bytes):
        broken = sfrom_bytes[:-4] + b'\xff\xff\xff\xff'
        assert parse_sfrom(broken).to_bytes() == sfrom_bytes
