import logging
import socket
from typing import List, Optional

from .errors import ConnectionFailed

logger = logging.getLogger(__name__)


def reply_complete(lines: List[str]) -> bool:
    """True once the lines read so far form a whole reply.

    A multi-line reply opens with "123-" and ends with a line starting "123 ".
    """
    if not lines:
        return False
    first = lines[0]
    if len(first) < 4 or first[3] != '-':
        return True
    code = first[:3]
    last = lines[-1]
    return len(lines) > 1 and last.startswith(code) and (len(last) == 3 or last[3] == ' ')


def clean_line(raw: bytes, encoding: str) -> str:
    line = raw.decode(encoding, errors='replace').rstrip('\r\n')
    # Some servers echo the response with a debug prefix ("> " or ">>")
    while line.startswith('>') or line.startswith('*'):
        line = line[1:].strip()
    return line


class ControlConnectionManager:
    """Blocking control connection.

    The methods are coroutines so the same client code drives both this and
    the asyncio connection, but they never suspend: run them with run_sync.
    """

    def __init__(self, host: str, port: int, timeout: float = 10.0, encoding: str = 'utf-8'):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.encoding = encoding
        self.socket: Optional[socket.socket] = None
        self._file = None

    @property
    def is_connected(self) -> bool:
        return self.socket is not None

    async def connect(self):
        if self.socket is not None:
            raise RuntimeError("Connection already established.")
        try:
            logger.info(f"Connecting to {self.host}:{self.port} (timeout={self.timeout}s)")
            self.socket = socket.create_connection((self.host, self.port), timeout=self.timeout)
            self._file = self.socket.makefile('rb')
            logger.info(f"✓ Connected to {self.host}:{self.port}")
        except OSError as e:
            logger.error(f"✗ Failed to connect to {self.host}:{self.port} - {e}")
            self.close()
            raise ConnectionFailed(f"Failed to connect to {self.host}:{self.port} - {e}") from e

    async def disconnect(self):
        if self.socket:
            logger.info(f"Closing connection to {self.host}:{self.port}")
            try:
                self.socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        self.close()

    def close(self):
        """Release the socket immediately, without any protocol exchange."""
        if self._file is not None:
            self._file.close()
            self._file = None
        if self.socket is not None:
            self.socket.close()
            self.socket = None
            logger.info(f"✓ Disconnected from {self.host}:{self.port}")

    async def send_command(self, command: str):
        if self.socket is None:
            raise RuntimeError("No connection established.")
        if not command.endswith('\r\n'):
            command += '\r\n'
        logger.debug(f"→ SEND: {command.strip()}")
        try:
            self.socket.sendall(command.encode(self.encoding))
        except OSError as e:
            self.close()
            raise ConnectionFailed(f"Failed to send to {self.host}:{self.port} - {e}") from e

    async def receive_response(self) -> str:
        if self._file is None:
            raise RuntimeError("No connection established.")
        lines = []
        while not reply_complete(lines):
            try:
                raw = self._file.readline()
            except OSError as e:
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
