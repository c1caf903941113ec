import enum
import os
from dataclasses import dataclass, replace
from typing import Optional

from .hashing import HashAlgorithm


class DataType(enum.Enum):
    ASCII = "A"
    BINARY = "I"

    @classmethod
    def parse(cls, value: str) -> "DataType":
        value = value.strip().upper()
        if value in ("A", "ASCII"):
            return cls.ASCII
        if value in ("I", "BINARY", "IMAGE"):
            return cls.BINARY
        raise ValueError(f"Unknown data type: {value}")


@dataclass(frozen=True)
class ClientConfig:
    """Immutable connection settings of one FTP client.

    Cloning a client copies this value into a brand new client, so a clone
    never shares connection state with the original.
    """
    host: str
    port: int = 21
    user: Optional[str] = None
    password: Optional[str] = None
    timeout: float = 10.0
    encoding: str = "utf-8"
    fxp_data_type: DataType = DataType.BINARY
    checksum_algorithm: HashAlgorithm = HashAlgorithm.AUTO

    def with_changes(self, **changes) -> "ClientConfig":
        return replace(self, **changes)

    @classmethod
    def from_env(cls, prefix: str = "FXP_") -> "ClientConfig":
        """Build a config from <prefix>HOST, <prefix>PORT, <prefix>USER, ...

        Unset variables keep their defaults. HOST is required.
        """
        host = os.getenv(f"{prefix}HOST")
        if not host:
            raise ValueError(f"{prefix}HOST is not set")
        return cls(
            host=host,
            port=int(os.getenv(f"{prefix}PORT", "21")),
            user=os.getenv(f"{prefix}USER"),
            password=os.getenv(f"{prefix}PASSWORD"),
            timeout=float(os.getenv(f"{prefix}TIMEOUT", "10.0")),
            encoding=os.getenv(f"{prefix}ENCODING", "utf-8"),
            fxp_data_type=DataType.parse(os.getenv(f"{prefix}DATA_TYPE", "I")),
            checksum_algorithm=HashAlgorithm.parse(os.getenv(f"{prefix}CHECKSUM", "auto")),
        )
