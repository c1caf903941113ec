import logging
import weakref
from datetime import datetime, timezone
from typing import Callable, Optional

from .cancel import check
from .config import ClientConfig, DataType
from .connection import ControlConnectionManager
from .errors import CommandFailed, InvalidArgument, MalformedResponse
from .hashing import FtpHash, HashAlgorithm, parse_hash_reply, parse_legacy_reply
from .parser import Parser, Reply

logger = logging.getLogger(__name__)

CHECKSUM_FEATURES = ("HASH", "MD5", "XMD5", "XCRC", "XSHA1", "XSHA256", "XSHA512")

# Legacy verbs tried, strongest first, when the server picks the algorithm
LEGACY_PREFERENCE = (
    ("XSHA512", HashAlgorithm.SHA512),
    ("XSHA256", HashAlgorithm.SHA256),
    ("XSHA1", HashAlgorithm.SHA1),
    ("XMD5", HashAlgorithm.MD5),
    ("MD5", HashAlgorithm.MD5),
    ("XCRC", HashAlgorithm.CRC),
)


class FtpClient:
    """One FTP control connection and the commands the FXP core relies on.

    All operations are coroutines. With the default blocking connection they
    complete without suspending (drive them with run_sync); with
    AsyncControlConnectionManager they are awaited on an event loop.
    """

    def __init__(self, config: ClientConfig, connection_factory=ControlConnectionManager,
                 parser: Optional[Parser] = None):
        self.config = config
        self.connection_factory = connection_factory
        self.conn = connection_factory(config.host, config.port, config.timeout, config.encoding)
        self.parser = parser or Parser()
        self.features = {}
        self.current_data_type: Optional[DataType] = None
        self.warning_sink: Optional[Callable[[str], None]] = None
        # history as list of dicts: {"time":..., "command":..., "raw":..., "parsed":..., "error":bool}
        self.history = []
        self._finalizer = None

    def __repr__(self):
        state = "connected" if self.is_connected else "disconnected"
        return f"<FtpClient {self.config.host}:{self.config.port} {state}>"

    @property
    def is_connected(self) -> bool:
        return self.conn.is_connected

    def clone(self) -> "FtpClient":
        """New, unconnected client with the same configuration."""
        return FtpClient(self.config, self.connection_factory)

    def auto_release(self):
        """Close the socket when this client is garbage collected."""
        if self._finalizer is None:
            self._finalizer = weakref.finalize(self, self.conn.close)

    # Connection lifecycle

    async def connect(self, token=None):
        check(token)
        self.current_data_type = None
        await self.conn.connect()
        check(token)
        banner = self.parser.parse_data(await self.conn.receive_response())
        logger.info(f"Banner from {self.config.host}: {banner}")
        if not banner.success:
            await self.conn.disconnect()
            raise CommandFailed(banner)

        if self.config.user:
            reply = await self.execute(f"USER {self.config.user}", token)
            if reply.code == "331":
                reply = await self.execute(f"PASS {self.config.password or ''}", token)
            if not reply.code.startswith('2'):
                await self.conn.disconnect()
                raise CommandFailed(reply)

        await self._load_features(token)

    async def close(self, token=None):
        if self._finalizer is not None:
            self._finalizer.detach()
            self._finalizer = None
        if not self.is_connected:
            return
        try:
            await self.execute("QUIT", token)
        finally:
            await self.conn.disconnect()
            self.current_data_type = None

    # Commands

    async def execute(self, command: str, token=None) -> Reply:
        """Send one command line and return its parsed reply."""
        check(token)
        if command.strip().upper().split(maxsplit=1)[:1] == ["TYPE"]:
            # a raw TYPE leaves the server in an unknown mode until set_data_type runs again
            self.current_data_type = None
        await self.conn.send_command(command)
        check(token)
        response = await self.conn.receive_response()
        parsed = self.parser.parse_data(response)
        self.history.append({
            "time": datetime.now(timezone.utc),
            "command": "PASS ****" if command.startswith("PASS ") else command,
            "raw": response,
            "parsed": parsed,
            "error": parsed.type in ("error", "unknown")
        })
        return parsed

    async def set_data_type(self, data_type: DataType, token=None):
        if self.current_data_type is data_type:
            return
        reply = await self.execute(f"TYPE {data_type.value}", token)
        if not reply.success:
            raise CommandFailed(reply)
        self.current_data_type = data_type

    async def get_working_directory(self, token=None) -> str:
        reply = await self.execute("PWD", token)
        if not reply.success:
            raise CommandFailed(reply)
        path = self.parser.parse_pwd_response(reply.message)
        if path is None:
            raise MalformedResponse(reply.message, "Malformed PWD response")
        return path

    async def set_working_directory(self, path: str, token=None):
        if not path or not path.strip():
            raise InvalidArgument("path")
        reply = await self.execute(f"CWD {path}", token)
        if not reply.success:
            raise CommandFailed(reply)

    # Features and checksums

    async def _load_features(self, token=None):
        reply = await self.execute("FEAT", token)
        self.features = {}
        if not reply.code.startswith('2'):
            logger.debug(f"FEAT not supported by {self.config.host}: {reply}")
            return
        # First info line is the "Features:" header, the final line is "End"
        for line in reply.info[1:]:
            name, _, params = line.strip().partition(' ')
            if name:
                self.features[name.upper()] = params.strip()
        logger.debug(f"Features of {self.config.host}: {sorted(self.features)}")

    def has_feature(self, name: str) -> bool:
        return name.upper() in self.features

    async def supports_checksum(self) -> bool:
        return any(self.has_feature(name) for name in CHECKSUM_FEATURES)

    def hash_algorithms(self):
        """Algorithms offered through the HASH extension, "*" marks the selected one."""
        offered = []
        for name in self.features.get("HASH", "").split(';'):
            algorithm = HashAlgorithm.from_hash_name(name.rstrip('*'))
            if algorithm is not None:
                offered.append((algorithm, name.endswith('*')))
        return offered

    async def get_checksum(self, remote_path: str, algorithm: Optional[HashAlgorithm] = None,
                           token=None) -> FtpHash:
        if not remote_path or not remote_path.strip():
            raise InvalidArgument("remote_path")
        algorithm = algorithm or self.config.checksum_algorithm

        if self.has_feature("HASH"):
            return await self._get_hash(remote_path, algorithm, token)

        verb = None
        if algorithm is HashAlgorithm.AUTO:
            for candidate, candidate_algorithm in LEGACY_PREFERENCE:
                if self.has_feature(candidate):
                    verb, algorithm = candidate, candidate_algorithm
                    break
        elif self.has_feature(algorithm.legacy_command):
            verb = algorithm.legacy_command
        elif algorithm is HashAlgorithm.MD5 and self.has_feature("MD5"):
            verb = "MD5"

        if verb is None:
            logger.debug(f"{self.config.host} offers no checksum command for {algorithm.name}")
            return FtpHash.invalid(algorithm)

        reply = await self.execute(f"{verb} {remote_path}", token)
        if not reply.success:
            return FtpHash.invalid(algorithm)
        return parse_legacy_reply(reply.message, algorithm)

    async def _get_hash(self, remote_path: str, algorithm: HashAlgorithm, token=None) -> FtpHash:
        offered = self.hash_algorithms()
        selected = next((a for a, current in offered if current), None)
        if algorithm is not HashAlgorithm.AUTO and algorithm is not selected:
            if any(a is algorithm for a, _ in offered):
                reply = await self.execute(f"OPTS HASH {algorithm.hash_name}", token)
                if reply.success:
                    self.features["HASH"] = ';'.join(
                        a.hash_name + ('*' if a is algorithm else '') for a, _ in offered
                    )
                else:
                    self.log_warning(f"Server refused hash algorithm {algorithm.hash_name}: {reply}")
            else:
                self.log_warning(f"Server does not offer {algorithm.hash_name}, using its default")

        reply = await self.execute(f"HASH {remote_path}", token)
        if not reply.success:
            return FtpHash.invalid(algorithm)
        return parse_hash_reply(reply.message)

    # Diagnostics

    def log_warning(self, message: str):
        logger.warning(message)
        if self.warning_sink is not None:
            try:
                self.warning_sink(message)
            except Exception:
                logger.debug("Warning sink failed", exc_info=True)

    def get_history(self):
        """Return a copy of the history list."""
        return list(self.history)

    def clear_history(self):
        self.history.clear()
