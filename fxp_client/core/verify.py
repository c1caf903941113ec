import enum
import logging
from typing import Callable, Optional

from .cancel import CancelToken, check
from .errors import InvalidArgument
from .hashing import HashAlgorithm
from .sync import run_sync

logger = logging.getLogger(__name__)


class VerificationOutcome(enum.Enum):
    SKIPPED = "skipped"
    VERIFIED = "verified"
    FAILED = "failed"

    @property
    def succeeded(self) -> bool:
        return self is not VerificationOutcome.FAILED

    def __bool__(self):
        return self.succeeded


class TransferVerifier:
    """Checks a transferred file against the checksum the server reports.

    A server without checksum support skips verification, which counts as
    success. Mismatches and local read errors are reported as FAILED, never
    raised.
    """

    def __init__(self, client, warn: Optional[Callable[[str], None]] = None):
        self.client = client
        self.warn = warn or client.log_warning

    def verify(self, local_path: str, remote_path: str,
               algorithm: Optional[HashAlgorithm] = None,
               token: Optional[CancelToken] = None) -> VerificationOutcome:
        return run_sync(self.verify_async(local_path, remote_path, algorithm, token))

    async def verify_async(self, local_path: str, remote_path: str,
                           algorithm: Optional[HashAlgorithm] = None,
                           token: Optional[CancelToken] = None) -> VerificationOutcome:
        if not local_path or not local_path.strip():
            raise InvalidArgument("local_path")
        if not remote_path or not remote_path.strip():
            raise InvalidArgument("remote_path")

        check(token)
        if not await self.client.supports_checksum():
            logger.debug(f"Checksum not supported, skipping verification of {remote_path}")
            return VerificationOutcome.SKIPPED

        remote_hash = await self.client.get_checksum(remote_path, algorithm, token)
        if not remote_hash.is_valid:
            logger.info(f"No usable checksum for {remote_path}")
            return VerificationOutcome.FAILED

        try:
            matched = remote_hash.verify(local_path)
        except OSError as e:
            self.warn(f"Failed to verify file {local_path} : {e}")
            return VerificationOutcome.FAILED

        if matched:
            logger.info(f"✓ {local_path} matches {remote_path} ({remote_hash})")
            return VerificationOutcome.VERIFIED
        logger.info(f"✗ {local_path} does not match {remote_path} ({remote_hash})")
        return VerificationOutcome.FAILED
