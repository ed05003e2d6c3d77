"""
Checksum strategies.

Both formats end in a u32 checksum over every preceding byte. The algorithms
were derived from sample files rather than documentation, so each one is a
replaceable strategy looked up by name.
"""

import zlib
from abc import ABC, abstractmethod
from typing import Dict, Type


class Checksum(ABC):
    """Base checksum strategy."""

    name = ''

    @abstractmethod
    def compute(self, data: bytes) -> int:
        """Checksum of data as an unsigned 32-bit value."""

    def verify(self, data: bytes, expected: int) -> bool:
        return self.compute(data) == expected


class Sum32Checksum(Checksum):
    """Sum of all bytes, modulo 2**32."""

    name = 'sum32'

    def compute(self, data: bytes) -> int:
        return sum(data) & 0xFFFFFFFF


class Crc32Checksum(Checksum):
    """CRC-32 (the zlib polynomial)."""

    name = 'crc32'

    def compute(self, data: bytes) -> int:
        return zlib.crc32(data) & 0xFFFFFFFF


CHECKSUMS: Dict[str, Type[Checksum]] = {
    Sum32Checksum.name: Sum32Checksum,
    Crc32Checksum.name: Crc32Checksum,
}


def register_checksum(cls: Type[Checksum]) -> Type[Checksum]:
    """Register a checksum strategy under its name. Usable as a decorator."""
    CHECKSUMS[cls.name] = cls
    return cls


def get_checksum(name: str) -> Checksum:
    """
    Get a checksum strategy by name.

    Raises:
        ValueError: If no strategy has that name
    """
    try:
        return CHECKSUMS[name]()
    except KeyError:
        raise ValueError(f"Unknown checksum algorithm: {name}") from None
