"""
Document formats.

Supports:
- SFROM containers (SNES ROM image plus runtime metadata)
- VC databases (per-title records for GBA and SNES)
"""

from .document import BinaryDocument
from .sfrom import SfromDocument, parse_sfrom
from .vcdb import VcDatabaseDocument, parse_vc_database
from .string_pool import StringPool
from .sfrom_structures import *
from .vcdb_structures import *

__all__ = [
    'BinaryDocument', 'SfromDocument', 'VcDatabaseDocument', 'StringPool',
    'parse_sfrom', 'parse_vc_database',
]
