"""
Global pytest configuration and fakes for hopssh tests

The fakes stand in for the SSH library, the terminal and the platform so the
orchestrator can be exercised without a real SSH server.
"""

import asyncio
import itertools
from typing import Any, Dict, List, Tuple

import pytest

from hopssh.services.agent import PlatformProbe
from hopssh.services.terminal import TerminalIO
from hopssh.services.transport import ForwardedChannel, Transport


class RecordingWriter:
    """Writer half that records everything written to it."""

    def __init__(self, on_eof=None):
        self.data = bytearray()
        self.eof = False
        self.closed = False
        self._on_eof = on_eof

    def write(self, data):
        if self.closed:
            raise ConnectionResetError("writer closed")
        self.data.extend(data)

    async def drain(self):
        return None

    def can_write_eof(self):
        return True

    def write_eof(self):
        self.eof = True
        if self._on_eof is not None:
            self._on_eof()

    def close(self):
        self.closed = True

    def is_closing(self):
        return self.closed


class FakeSession:
    _ids = itertools.count(1)

    def __init__(self, host, port, channel=None):
        self.id = next(self._ids)
        self.host = host
        self.port = port
        self.channel = channel
        self.ended = False

    def __repr__(self):
        return f"FakeSession({self.host}:{self.port} #{self.id})"


class FakeShellChannel:
    """Remote shell that answers when its stdin reaches EOF, like `exit` would."""

    def __init__(self, output=b"", error=b""):
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.stdin = RecordingWriter(on_eof=self.finish)
        self._output = output
        self._error = error
        self._closed = asyncio.Event()

    def finish(self):
        if self._closed.is_set():
            return
        if self._output:
            self.stdout.feed_data(self._output)
        if self._error:
            self.stderr.feed_data(self._error)
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._closed.set()

    def close(self):
        self.finish()

    async def wait_closed(self):
        await self._closed.wait()


class FakeTransport(Transport):
    """Records every primitive call made by the orchestrator."""

    def __init__(self):
        self.calls: List[Tuple] = []
        self.connects: List[Dict[str, Any]] = []
        self.forwarded: List[Tuple] = []
        self.channels: List[ForwardedChannel] = []
        self.shells: List[FakeShellChannel] = []
        self.ended: List[FakeSession] = []
        self.fail_connect: Dict[str, Exception] = {}
        self.fail_channel: Dict[Tuple[str, int], Exception] = {}
        self.shell_output = b""
        self.shell_error = b""

    async def connect(self, host, port, credentials, extra=None, channel=None):
        self.calls.append(('connect', host, port))
        self.connects.append({
            'host': host, 'port': port, 'credentials': credentials,
            'extra': extra, 'channel': channel,
        })
        await asyncio.sleep(0)
        if host in self.fail_connect:
            raise self.fail_connect[host]
        return FakeSession(host, port, channel)

    async def open_forwarded_channel(self, session, bind_host, bind_port, dest_host, dest_port):
        self.calls.append(('forward', session, bind_host, bind_port, dest_host, dest_port))
        self.forwarded.append((session, bind_host, bind_port, dest_host, dest_port))
        await asyncio.sleep(0)
        if (dest_host, dest_port) in self.fail_channel:
            raise self.fail_channel[(dest_host, dest_port)]
        channel = ForwardedChannel(asyncio.StreamReader(), RecordingWriter())
        self.channels.append(channel)
        return channel

    async def open_shell_channel(self, session):
        self.calls.append(('shell', session))
        shell = FakeShellChannel(self.shell_output, self.shell_error)
        self.shells.append(shell)
        return shell

    async def end(self, session):
        self.calls.append(('end', session))
        session.ended = True
        self.ended.append(session)


class FakeTerminal(TerminalIO):
    def __init__(self, passphrase="secret", stdin_data=b""):
        super().__init__()
        self.passphrase = passphrase
        self.prompts = 0
        self.output = bytearray()
        self.stdin_data = stdin_data
        self.input_closed = False

    def prompt_passphrase(self, prompt=""):
        self.prompts += 1
        return self.passphrase

    def write_output(self, data):
        self.output.extend(data)

    async def open_input(self):
        reader = asyncio.StreamReader()
        if self.stdin_data:
            reader.feed_data(self.stdin_data)
        reader.feed_eof()
        return reader

    def close_input(self):
        self.input_closed = True


class FakePlatform(PlatformProbe):
    def __init__(self, name="posix", agent=None):
        self.name = name
        self._agent = agent

    def default_agent(self):
        return self._agent


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def terminal():
    return FakeTerminal()


@pytest.fixture
def posix_platform():
    return FakePlatform()


@pytest.fixture(autouse=True)
def home(tmp_path, monkeypatch):
    """Isolated home directory with an empty ~/.ssh."""
    home_dir = tmp_path / "home"
    (home_dir / ".ssh").mkdir(parents=True)
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("USERPROFILE", str(home_dir))
    return home_dir


@pytest.fixture
def environ():
    return {"USER": "alice"}


@pytest.fixture
def make_orchestrator(transport, terminal, posix_platform, environ):
    """Factory for orchestrators wired to the fakes."""
    from hopssh.services.orchestrator import SSHOrchestrator

    def _make(options, **overrides):
        kwargs = {
            'transport': transport,
            'terminal': terminal,
            'platform': posix_platform,
            'environ': environ,
        }
        kwargs.update(overrides)
        return SSHOrchestrator(options, **kwargs)

    return _make
