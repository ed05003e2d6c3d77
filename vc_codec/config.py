"""
Configuration handling for vc_codec.
"""

from dataclasses import dataclass, fields as dataclass_fields
from typing import Optional
import json
from pathlib import Path

from .utils.string_utils import to_camel_case, to_snake_case


@dataclass
class Config:
    """Configuration options for the SFROM and VC database codecs."""

    # Text options
    text_encoding: str = 'utf-8'

    # Checksum options
    strict_checksum: bool = False
    sfrom_checksum: str = 'sum32'
    vcdb_checksum: str = 'crc32'

    # Serialization options
    dedupe_strings: bool = True

    @classmethod
    def load(cls, path: Optional[Path] = None) -> 'Config':
        """Load configuration from a JSON file."""
        if path is None:
            path = Path(__file__).parent / 'config.json'

        if not path.exists():
            return cls()

        with open(path, 'r') as f:
            data = json.load(f)

        converted = {to_snake_case(key): value for key, value in data.items()}

        # Filter to only include valid fields
        valid_fields = {f.name for f in dataclass_fields(cls)}
        filtered = {k: v for k, v in converted.items() if k in valid_fields}

        return cls(**filtered)

    def save(self, path: Path) -> None:
        """Save configuration to a JSON file."""
        data = {to_camel_case(key): value for key, value in self.__dict__.items()}

        with open(path, 'w') as f:
            json.dump(data, f, indent=2)
