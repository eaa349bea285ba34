"""Test accessories for telnetmux project."""
# std imports
import contextlib
import socket
import errno
import time

# 3rd-party
import pytest
from pytest_asyncio.plugin import unused_tcp_port

# local
from telnetmux.server import TerminalServer


@pytest.fixture(scope="module", params=['127.0.0.1'])
def bind_host(request):
    """ Localhost bind address. """
    return request.param


class FakeSocket(object):
    """Records bytes sent, in place of a connected, non-blocking socket."""

    def __init__(self, peername=('127.0.0.1', 50000)):
        self.peername = peername
        self.sent = bytearray()
        self.closed = False
        #: raise EAGAIN on send, as a full non-blocking socket would.
        self.would_block = False
        #: accept at most this many bytes per send.
        self.limit = None

    def send(self, buf):
        if self.would_block:
            raise BlockingIOError(errno.EAGAIN, 'Resource temporarily unavailable')
        if self.limit is not None:
            buf = buf[:self.limit]
        self.sent.extend(buf)
        return len(buf)

    def getpeername(self):
        return self.peername

    def shutdown(self, how):
        pass

    def close(self):
        self.closed = True

    def take(self):
        """Return and clear bytes sent so far."""
        data, self.sent = bytes(self.sent), bytearray()
        return data


class Host(object):
    """Host application recording each callback of a server."""

    def __init__(self, accept=True):
        self.accept = accept
        self.connected = []
        self.disconnected = []
        self.received = []

    def on_connect(self, line):
        self.connected.append(line)
        return self.accept

    def on_disconnect(self, line):
        self.disconnected.append(line)

    def on_receive(self, line, byte):
        self.received.append((line, byte))


@contextlib.contextmanager
def running_server(host, bind_host, port=0, **kwargs):
    """Start a :class:`TerminalServer` calling back ``host``, stopped on exit."""
    server = TerminalServer(host.on_receive,
                            connect_callback=host.on_connect,
                            disconnect_callback=host.on_disconnect,
                            **kwargs)
    assert server.start(port=port, host=bind_host)
    try:
        yield server
    finally:
        server.stop()


@contextlib.contextmanager
def connection(server, timeout=5.0):
    """Connect a blocking client socket to ``server``."""
    sock = socket.create_connection((server.host, server.port), timeout=timeout)
    try:
        yield sock
    finally:
        sock.close()


def recv_exact(sock, size):
    """Read ``size`` bytes from ``sock``, fewer only at end of stream."""
    buf = b''
    while len(buf) < size:
        chunk = sock.recv(size - len(buf))
        if not chunk:
            break
        buf += chunk
    return buf


def at_eof(sock):
    """Whether the peer closed ``sock`` without sending anything further."""
    try:
        return sock.recv(1) == b''
    except ConnectionResetError:
        return True


def wait_for(predicate, timeout=5.0):
    """Poll ``predicate`` until true, returning its last value."""
    stime = time.time()
    while not predicate():
        if time.time() - stime > timeout:
            break
        time.sleep(0.01)
    return predicate()


__all__ = ('bind_host', 'unused_tcp_port', 'FakeSocket', 'Host',
           'running_server', 'connection', 'recv_exact', 'at_eof',
           'wait_for',)
