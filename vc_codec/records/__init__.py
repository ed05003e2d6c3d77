"""
Platform record codecs.

Importing this package registers the GBA and SNES codecs.
"""

from .base import (
    Platform, RecordCodec, TitleRecord,
    get_codec, register_codec, registered_platforms, resolve_platform,
)
from .gba import GbaFixedFields, GbaRecordCodec, GbaSaveType
from .snes import (
    EnhancementChip, FrameRate, RomType, SnesFixedFields, SnesFooter,
    SnesMetadata, SnesRecordCodec,
)
from .game_tags import GameTag, GameTags

__all__ = [
    'Platform', 'RecordCodec', 'TitleRecord',
    'get_codec', 'register_codec', 'registered_platforms', 'resolve_platform',
    'GbaFixedFields', 'GbaRecordCodec', 'GbaSaveType',
    'EnhancementChip', 'FrameRate', 'RomType', 'SnesFixedFields', 'SnesFooter',
    'SnesMetadata', 'SnesRecordCodec',
    'GameTag', 'GameTags',
]
