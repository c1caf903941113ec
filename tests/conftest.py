import asyncio
import logging

import pytest

from fxp_client.core import ClientConfig, CommandFailed, FtpHash, Reply


class FakeClient:
    """Stands in for FtpClient. Replies are scripted per command verb."""

    def __init__(self, name, replies=None, cwd="/", suspend=False, checksum=None, supports_checksum=True,
                 connect_error=None):
        self.name = name
        self.config = ClientConfig(host=f"{name}.example")
        self.replies = {verb: list(queue) for verb, queue in (replies or {}).items()}
        self.cwd = cwd
        self.suspend = suspend
        self.checksum = checksum
        self.checksum_supported = supports_checksum
        self.connect_error = connect_error
        self.calls = []
        self.clones = []
        self.connected = True
        self.auto_released = False
        self.closed = False
        self.logger = logging.getLogger(f"fake.{name}")

    async def _io(self):
        if self.suspend:
            await asyncio.sleep(0)

    def clone(self):
        clone = FakeClient(f"{self.name}-clone", cwd="/", suspend=self.suspend,
                           connect_error=self.connect_error)
        clone.config = self.config
        clone.connected = False
        self.clones.append(clone)
        return clone

    def auto_release(self):
        self.auto_released = True

    async def connect(self, token=None):
        self.calls.append("connect")
        await self._io()
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def close(self, token=None):
        self.calls.append("close")
        self.closed = True
        self.connected = False

    async def execute(self, command, token=None):
        if token is not None:
            token.raise_if_cancelled()
        self.calls.append(command)
        await self._io()
        verb = command.split()[0]
        queue = self.replies.get(verb)
        if queue:
            return queue.pop(0)
        return Reply("200", "OK")

    async def set_data_type(self, data_type, token=None):
        reply = await self.execute(f"TYPE {data_type.value}", token)
        if not reply.success:
            raise CommandFailed(reply)

    async def get_working_directory(self, token=None):
        self.calls.append("PWD")
        await self._io()
        return self.cwd

    async def set_working_directory(self, path, token=None):
        self.calls.append(f"CWD {path}")
        await self._io()
        self.cwd = path

    async def supports_checksum(self):
        self.calls.append("supports_checksum")
        await self._io()
        return self.checksum_supported

    async def get_checksum(self, remote_path, algorithm=None, token=None):
        self.calls.append(f"get_checksum {remote_path}")
        await self._io()
        return self.checksum if self.checksum is not None else FtpHash.invalid()

    def log_warning(self, message):
        self.logger.warning(message)


@pytest.fixture
def fake_client():
    return FakeClient


@pytest.fixture(params=["blocking", "suspending"])
def mode(request):
    return request.param


@pytest.fixture
def make_client(mode):
    """FakeClient factory whose I/O suspends only in suspending mode."""
    def factory(name, **kwargs):
        return FakeClient(name, suspend=(mode == "suspending"), **kwargs)
    return factory


@pytest.fixture
def run(mode):
    """Run the same operation blocking or on an event loop."""
    def runner(blocking_call, async_call):
        if mode == "blocking":
            return blocking_call()
        return asyncio.run(async_call())
    return runner
