"""
Core FXP client logic.
Includes control connections, reply parser, FXP session negotiation and
transfer verification.
"""

from .aio_connection import AsyncControlConnectionManager
from .cancel import CancelToken
from .client import FtpClient
from .config import ClientConfig, DataType
from .connection import ControlConnectionManager
from .errors import (
    CommandFailed,
    ConnectionFailed,
    FxpError,
    InvalidArgument,
    MalformedResponse,
    OperationCancelled,
)
from .fxp import FxpSessionNegotiator
from .hashing import FtpHash, HashAlgorithm
from .parser import Endpoint, Parser, Reply
from .session import FxpSession
from .sync import run_sync
from .verify import TransferVerifier, VerificationOutcome

__all__ = [
    "AsyncControlConnectionManager",
    "CancelToken",
    "ClientConfig",
    "CommandFailed",
    "ConnectionFailed",
    "ControlConnectionManager",
    "DataType",
    "Endpoint",
    "FtpClient",
    "FtpHash",
    "FxpError",
    "FxpSession",
    "FxpSessionNegotiator",
    "HashAlgorithm",
    "InvalidArgument",
    "MalformedResponse",
    "OperationCancelled",
    "Parser",
    "Reply",
    "TransferVerifier",
    "VerificationOutcome",
    "run_sync",
]
