"""
vc_codec - SFROM container and VC database codec.

Parses SFROM files and virtual console title databases, validates their
structure, applies field edits through an exclusive session and writes them
back with a recomputed checksum.
"""

__version__ = "0.1.0"
__author__ = "vc_codec developers"

from .config import Config
from .errors import (
    VcCodecError, ParseError, EditError, SessionError, AlreadyFinalized, SerializeError,
)
from .formats import SfromDocument, VcDatabaseDocument, parse_sfrom, parse_vc_database
from .records import Platform
from .session import EditSession, SessionState

__all__ = [
    'Config', 'SfromDocument', 'VcDatabaseDocument', 'parse_sfrom', 'parse_vc_database',
    'Platform', 'EditSession', 'SessionState',
    'VcCodecError', 'ParseError', 'EditError', 'SessionError', 'AlreadyFinalized',
    'SerializeError', '__version__',
]
