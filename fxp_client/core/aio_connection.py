import asyncio
import logging

from .connection import clean_line, reply_complete
from .errors import ConnectionFailed

logger = logging.getLogger(__name__)


class AsyncControlConnectionManager:
    """Control connection over asyncio streams. Every read and write suspends."""

    def __init__(self, host: str, port: int, timeout: float = 10.0, encoding: str = 'utf-8'):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.encoding = encoding
        self.reader = None
        self.writer = None

    @property
    def is_connected(self) -> bool:
        return self.writer is not None

    async def connect(self):
        if self.writer is not None:
            raise RuntimeError("Connection already established.")
        try:
            logger.info(f"Connecting to {self.host}:{self.port} (timeout={self.timeout}s)")
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port), self.timeout
            )
            logger.info(f"✓ Connected to {self.host}:{self.port}")
        except (OSError, asyncio.TimeoutError) as e:
            logger.error(f"✗ Failed to connect to {self.host}:{self.port} - {e}")
            self.close()
            raise ConnectionFailed(f"Failed to connect to {self.host}:{self.port} - {e}") from e

    async def disconnect(self):
        writer = self.writer
        self.close()
        if writer is not None:
            try:
                await writer.wait_closed()
            except OSError:
                pass

    def close(self):
        if self.writer is not None:
            self.writer.close()
            logger.info(f"✓ Disconnected from {self.host}:{self.port}")
        self.reader = None
        self.writer = None

    async def send_command(self, command: str):
        if self.writer is None:
            raise RuntimeError("No connection established.")
        if not command.endswith('\r\n'):
            command += '\r\n'
        logger.debug(f"→ SEND: {command.strip()}")
        try:
            self.writer.write(command.encode(self.encoding))
            await asyncio.wait_for(self.writer.drain(), self.timeout)
        except (OSError, asyncio.TimeoutError) as e:
            self.close()
            raise ConnectionFailed(f"Failed to send to {self.host}:{self.port} - {e}") from e

    async def receive_response(self) -> str:
        if self.reader is None:
            raise RuntimeError("No connection established.")
        lines = []
        while not reply_complete(lines):
            try:
                raw = await asyncio.wait_for(self.reader.readline(), self.timeout)
            except (OSError, asyncio.TimeoutError) as e:
                self.close()
                raise ConnectionFailed(f"Failed to read from {self.host}:{self.port} - {e}") from e
            if not raw:
                self.close()
                raise ConnectionFailed(f"Connection closed by {self.host}:{self.port}")
            line = clean_line(raw, self.encoding)
            if line:
                lines.append(line)
        response = '\n'.join(lines)
        logger.debug(f"← RECV: {response}")
        return response
