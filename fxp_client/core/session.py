import logging
from dataclasses import dataclass
from typing import Optional

from .client import FtpClient
from .sync import run_sync

logger = logging.getLogger(__name__)


@dataclass
class FxpSession:
    """The connections taking part in one FXP transfer.

    source and target are borrowed from the caller. progress, when present,
    belongs to the session and is released by close()/aclose().
    """
    source: FtpClient
    target: FtpClient
    progress: Optional[FtpClient] = None

    def involves(self, client) -> bool:
        return client is self.source or client is self.target

    async def aclose(self):
        progress, self.progress = self.progress, None
        if progress is not None:
            logger.debug(f"Closing progress connection {progress!r}")
            await progress.close()

    def close(self):
        run_sync(self.aclose())

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
