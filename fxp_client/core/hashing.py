import enum
import hashlib
import logging
import re
import zlib
from dataclasses import dataclass

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
HEX_PATTERN = re.compile(r"^[0-9a-fA-F]+$")


class HashAlgorithm(enum.Enum):
    # value: (name used by the HASH extension, legacy command verb, hashlib name)
    AUTO = (None, None, None)
    SHA1 = ("SHA-1", "XSHA1", "sha1")
    SHA256 = ("SHA-256", "XSHA256", "sha256")
    SHA512 = ("SHA-512", "XSHA512", "sha512")
    MD5 = ("MD5", "XMD5", "md5")
    CRC = ("CRC32", "XCRC", None)

    @property
    def hash_name(self):
        return self.value[0]

    @property
    def legacy_command(self):
        return self.value[1]

    @classmethod
    def parse(cls, value: str) -> "HashAlgorithm":
        """Accepts enum names ("sha256") and HASH extension names ("SHA-256")."""
        key = value.strip().upper()
        for algorithm in cls:
            if key == algorithm.name or key == algorithm.hash_name:
                return algorithm
        raise ValueError(f"Unknown hash algorithm: {value}")

    @classmethod
    def from_hash_name(cls, name: str):
        name = name.strip().upper()
        for algorithm in cls:
            if algorithm.hash_name == name:
                return algorithm
        return None

    def matches_digest(self, token: str) -> bool:
        """True if token is a hex digest of the length this algorithm produces."""
        if not HEX_PATTERN.match(token):
            return False
        if self is HashAlgorithm.CRC:
            return len(token) <= 8
        if self is HashAlgorithm.AUTO:
            return True
        return len(token) == hashlib.new(self.value[2]).digest_size * 2

    def new(self):
        if self is HashAlgorithm.CRC:
            return _Crc32()
        if self is HashAlgorithm.AUTO:
            raise ValueError("AUTO is not a concrete hash algorithm")
        return hashlib.new(self.value[2])


class _Crc32:
    """Minimal hashlib-like wrapper around zlib.crc32."""

    def __init__(self):
        self._crc = 0

    def update(self, data: bytes):
        self._crc = zlib.crc32(data, self._crc)

    def hexdigest(self) -> str:
        return f"{self._crc & 0xFFFFFFFF:08x}"


def file_digest(path: str, algorithm: HashAlgorithm) -> str:
    digest = algorithm.new()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


@dataclass(frozen=True)
class FtpHash:
    algorithm: HashAlgorithm
    value: str
    is_valid: bool = True

    @classmethod
    def invalid(cls, algorithm: HashAlgorithm = HashAlgorithm.AUTO) -> "FtpHash":
        return cls(algorithm, "", False)

    def verify(self, local_path: str) -> bool:
        """Compare against the digest of a local file. OSError propagates."""
        if not self.is_valid:
            return False
        local = file_digest(local_path, self.algorithm)
        if self.algorithm is HashAlgorithm.CRC:
            return int(local, 16) == int(self.value, 16)
        return local.lower() == self.value.lower()

    def __str__(self):
        return f"{self.algorithm.name}:{self.value}" if self.is_valid else "invalid"


def parse_hash_reply(message: str) -> FtpHash:
    """Parse the message of a HASH reply: "SHA-256 0-49 <hex> <filename>"."""
    parts = message.split(' ', 3)
    if len(parts) < 3:
        logger.debug(f"Unrecognised HASH reply: {message}")
        return FtpHash.invalid()
    algorithm = HashAlgorithm.from_hash_name(parts[0])
    value = parts[2]
    if algorithm is None or not HEX_PATTERN.match(value):
        logger.debug(f"Unrecognised HASH reply: {message}")
        return FtpHash.invalid()
    return FtpHash(algorithm, value.lower())


def parse_legacy_reply(message: str, algorithm: HashAlgorithm) -> FtpHash:
    """Parse XMD5/XSHA*/XCRC/MD5 replies.

    Only tokens of the algorithm's digest length count, so a file name that
    happens to be hex ("cafe") is not taken for the digest. CRC values may
    drop leading zeros, so the longest candidate wins.
    """
    candidates = [token for token in message.split() if algorithm.matches_digest(token)]
    if candidates:
        return FtpHash(algorithm, max(candidates, key=len).lower())
    logger.debug(f"No digest found in {algorithm.legacy_command} reply: {message}")
    return FtpHash.invalid(algorithm)
