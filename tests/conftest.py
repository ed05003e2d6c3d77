"""
Shared fixtures.
"""

import pytest

from vc_codec import Config, parse_sfrom, parse_vc_database

from builders import mixed_vcdb, pcm_sfrom, simple_sfrom, two_gba_vcdb


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def strict_config():
    return Config(strict_checksum=True)


@pytest.fixture
def vcdb_bytes():
    return two_gba_vcdb()


@pytest.fixture
def vcdb(vcdb_bytes):
    return parse_vc_database(vcdb_bytes)


@pytest.fixture
def mixed_bytes():
    return mixed_vcdb()


@pytest.fixture
def mixed(mixed_bytes):
    return parse_vc_database(mixed_bytes)


@pytest.fixture
def sfrom_bytes():
    return simple_sfrom()


@pytest.fixture
def sfrom(sfrom_bytes):
    return parse_sfrom(sfrom_bytes)


@pytest.fixture
def pcm_bytes():
    return pcm_sfrom()
