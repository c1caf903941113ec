import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .errors import MalformedResponse

logger = logging.getLogger(__name__)

RESPONSE_TYPES = {
    '1': 'preliminary',
    '2': 'success',
    '3': 'missing_info',
    '4': 'error',
    '5': 'error'
}

# h1,h2,h3,h4,p1,p2 anywhere in the message: "227 Entering Passive Mode (10,0,0,5,23,45)."
PASV_PATTERN = re.compile(r"(?<!\d)(\d+),(\d+),(\d+),(\d+),(\d+),(\d+)(?!\w)")


@dataclass(frozen=True)
class Reply:
    code: str
    message: str
    info: Tuple[str, ...] = field(default=())

    @property
    def type(self) -> str:
        return RESPONSE_TYPES.get(self.code[:1], 'unknown')

    @property
    def number(self) -> int:
        """Numeric reply code, 0 for an unparsable reply."""
        return int(self.code) if self.code.isdigit() else 0

    @property
    def success(self) -> bool:
        return self.type in ('preliminary', 'success', 'missing_info')

    def __str__(self):
        return f"{self.code} {self.message}"


@dataclass(frozen=True)
class Endpoint:
    quad: Tuple[int, int, int, int]
    port_high: int
    port_low: int
    # Exact text matched in the reply, sent back unchanged as the PORT argument
    literal: str

    @property
    def host(self) -> str:
        return '.'.join(str(part) for part in self.quad)

    @property
    def port(self) -> int:
        return self.port_high * 256 + self.port_low

    def __str__(self):
        return f"{self.host}:{self.port}"


class Parser:
    def parse_data(self, data: str) -> Reply:
        """Parse one complete server reply, single or multi-line."""
        lines = [line for line in data.strip().splitlines() if line.strip()]
        if not lines:
            logger.error("Empty FTP response")
            return Reply("000", "")

        first = lines[0].strip()
        code = first[:3]
        if not code.isdigit() or len(code) != 3:
            logger.error(f"Invalid FTP response format: {data} (code={code})")
            return Reply("000", data.strip())

        last = lines[-1].strip()
        message = self._strip_code(last, code)
        info = ()
        if len(lines) > 1:
            info = (self._strip_code(first, code),) + tuple(line.strip() for line in lines[1:-1])

        reply = Reply(code, message, info)
        logger.debug(f"Parsed response: code={code}, type={reply.type}, message={message[:50]}")
        return reply

    @staticmethod
    def _strip_code(line: str, code: str) -> str:
        if line.startswith(code) and len(line) > 3 and line[3] in ' -':
            return line[4:]
        if line == code:
            return ""
        return line

    def parse_pasv_response(self, message: str) -> Endpoint:
        """Extract the passive endpoint from a PASV/CPSV reply message."""
        match = PASV_PATTERN.search(message)
        if match is None:
            logger.error(f"Failed to parse PASV response: {message}")
            raise MalformedResponse(message)

        parts = [int(group) for group in match.groups()]
        if any(part > 255 for part in parts):
            logger.error(f"PASV response component out of byte range: {message}")
            raise MalformedResponse(message)

        endpoint = Endpoint(tuple(parts[:4]), parts[4], parts[5], match.group(0))
        logger.debug(f"PASV parsed: {endpoint}")
        return endpoint

    def parse_pwd_response(self, message: str) -> Optional[str]:
        """Returns the quoted directory of a PWD reply, doubled quotes unescaped."""
        match = re.search(r'"((?:[^"]|"")*)"', message)
        if match:
            return match.group(1).replace('""', '"')
        # Some servers answer without quotes: "257 /home/user is current directory"
        parts = message.split()
        if parts and parts[0].startswith('/'):
            return parts[0]
        return None
