r"""
Module provides class :class:`TerminalServer`, a Telnet terminal concentrator.

Each accepted connection is assigned the lowest free *line* number, and the
host application addresses connections only by line.  The server runs its
own asyncio event loop in a daemon thread, which watches the listening and
client sockets for readiness, interprets Telnet commands, and calls the
host's callbacks.  All callbacks run on that thread, one at a time, and
should return promptly: a slow callback delays every other line.

Example::

    from telnetmux import TerminalServer

    def on_receive(line, byte):
        server.send(line, bytes([byte]))

    def on_connect(line):
        server.negotiate_go_ahead(line)
        server.enable_local_echo(line, False)
        return True

    server = TerminalServer(on_receive, connect_callback=on_connect)
    server.start(port=2323)
    ...
    server.stop()
"""

from __future__ import annotations

# std imports
import collections
import concurrent.futures
import threading
import asyncio
import logging
import socket
import sys
from typing import Any, Callable, Optional

# local
from . import accessories
from .line import TelnetLine
from .table import LineTable
from ._types import ConnectCallback, ReceiveCallback, DisconnectCallback

__all__ = ("TerminalServer", "CONFIG")

CONFIG = collections.namedtuple(
    "CONFIG",
    [
        "host",
        "port",
        "max_lines",
        "recv_size",
    ],
)(
    host="",
    port=23,
    max_lines=64,
    recv_size=1024,
)
logger = logging.getLogger("telnetmux.server")


class TerminalServer:
    """
    Telnet server multiplexing client connections onto numbered lines.

    :param receive_callback: called as ``receive_callback(line, byte)`` for
        each data byte received from a client, ``byte`` is an integer.
    :param connect_callback: optional, called as ``connect_callback(line)``
        for each new client; return False to refuse it.  The line is
        already usable from within this callback, so that it may begin
        negotiation or send a banner.
    :param disconnect_callback: optional, called as
        ``disconnect_callback(line)`` before a line is torn down; the line
        is still usable from within this callback.
    :param max_lines: maximum number of simultaneous connections.
    :param recv_size: maximum number of bytes read from a socket at once.
    """

    def __init__(
        self,
        receive_callback: ReceiveCallback,
        connect_callback: Optional[ConnectCallback] = None,
        disconnect_callback: Optional[DisconnectCallback] = None,
        max_lines: int = CONFIG.max_lines,
        recv_size: int = CONFIG.recv_size,
    ):
        """Initialize server, without binding any socket."""
        if not callable(receive_callback):
            raise TypeError("receive_callback must be callable")
        self._receive_callback = receive_callback
        self._connect_callback = connect_callback
        self._disconnect_callback = disconnect_callback
        self.recv_size = recv_size

        #: Listening address used by :meth:`start` when none is given.
        self.host: str = CONFIG.host
        self.port: int = CONFIG.port

        self._table = LineTable(max_lines)
        self._sock: Optional[socket.socket] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        # serializes start() and stop().
        self._lifecycle = threading.Lock()

    def __repr__(self) -> str:
        return "<TerminalServer {0} {1}/{2} lines{3}>".format(
            self.server_address,
            self.active_lines,
            self.max_lines,
            "" if self.is_running else " stopped",
        )

    # public properties

    @property
    def is_running(self) -> bool:
        """Whether the server thread is running."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def max_lines(self) -> int:
        """Maximum number of simultaneous connections."""
        return self._table.max_lines

    @property
    def active_lines(self) -> int:
        """Number of lines currently connected."""
        return len(self._table)

    @property
    def server_address(self) -> str:
        """Listening address, ``'a.b.c.d:port'``."""
        return accessories.format_address(self.host, self.port)

    # server lifecycle

    def set_server_address(self, address: str) -> bool:
        """
        Set listening address from string, such as ``'0.0.0.0:23'``.

        Accepts ``port``, ``:port``, ``a.b.c.d`` or ``a.b.c.d:port``.

        :returns: False if the address is not valid, or if the server is
            already running.
        """
        if self.is_running:
            return False
        parsed = accessories.parse_address(
            address, default_host=self.host, default_port=self.port
        )
        if parsed is None:
            logger.warning("invalid server address %r", address)
            return False
        self.host, self.port = parsed
        return True

    def start(self, port: Optional[int] = None, host: Optional[str] = None) -> bool:
        """
        Bind the listening socket and start the server thread.

        :param port: TCP port, default is attribute ``port``.  Port 0 binds
            any free port, attribute ``port`` is updated with the result.
        :param host: bind address, default is attribute ``host``; the
            empty string binds any address.
        :returns: False if the listening socket could not be created or
            its event loop could not watch it, the error is logged.  True
            if started, or already running.
        """
        with self._lifecycle:
            if self.is_running:
                return True
            host = self.host if host is None else host
            port = self.port if port is None else port

            sock = self._create_server_socket(host, port)
            if sock is None:
                return False
            self.host, self.port = host, sock.getsockname()[1]
            logger.debug(
                "Server configuration: %s",
                accessories.repr_mapping(
                    dict(
                        host=self.host,
                        port=self.port,
                        max_lines=self.max_lines,
                        recv_size=self.recv_size,
                    )
                ),
            )

            # readiness of raw sockets requires a selector loop, the default
            # proactor loop of Windows has no add_reader().
            loop = asyncio.SelectorEventLoop()
            try:
                loop.add_reader(sock, self._on_accept_ready)
                self._sock, self._loop = sock, loop
                self._thread = threading.Thread(
                    target=self._run_loop,
                    args=(loop,),
                    name="telnetmux-{0}".format(self.port),
                    daemon=True,
                )
                self._thread.start()
            except (OSError, RuntimeError) as err:
                logger.error(
                    "TELNET server event loop failed for %s: %s",
                    self.server_address,
                    err,
                )
                self._sock = self._loop = self._thread = None
                loop.close()
                sock.close()
                return False

        logger.info("TELNET server listening on %s", self.server_address)
        return True

    def stop(self) -> None:
        """
        Disconnect all lines, close the listening socket and stop the thread.

        Disconnect callbacks for every connected line run to completion
        before this method returns.  Must not be called from a callback.
        """
        if self._thread is not None and threading.current_thread() is self._thread:
            raise RuntimeError("stop() must not be called from the server thread")
        with self._lifecycle:
            if not self.is_running:
                return
            assert self._loop is not None and self._thread is not None
            self._call_in_loop(self._loop, self._thread, self._shutdown)
            logger.debug("waiting for TELNET server thread to terminate")
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join()
            self._loop.close()
            self._loop = None
            self._thread = None
        logger.info("TELNET server stopped")

    # line operations, these may be called from any thread.

    def send(self, line: int, data: bytes) -> bool:
        """
        Send bytes to ``line``, IAC is escaped.

        :returns: False if the line is not connected, or the data could not
            be written in full without blocking.  Nothing is buffered.
        """
        with self._table.lock:
            conn = self._table.lookup(line)
            if conn is None:
                logger.debug("send to line %d: not connected", line)
                return False
            return conn.send(data)

    def send_file(self, line: int, path: str) -> bool:
        """Send text file ``path`` to ``line``, each line ending CR LF."""
        with self._table.lock:
            conn = self._table.lookup(line)
            if conn is None:
                return False
            return conn.send_file(path)

    def enable_local_echo(self, line: int, enable: bool) -> bool:
        """
        Ask the client on ``line`` to enable or disable its local echo.

        :returns: False if the line is not connected.
        """
        with self._table.lock:
            conn = self._table.lookup(line)
            if conn is None:
                return False
            conn.set_local_echo(enable)
            return True

    def negotiate_go_ahead(self, line: int) -> bool:
        """
        Negotiate SUPPRESS-GO-AHEAD in both directions with ``line``.

        Should be called once, at the start of the connection.

        :returns: False if the line is not connected.
        """
        with self._table.lock:
            conn = self._table.lookup(line)
            if conn is None:
                return False
            conn.suppress_go_ahead()
            return True

    def disconnect(self, line: int) -> bool:
        """
        Disconnect ``line``.

        The disconnect callback is called first, then the socket is closed
        and the line becomes free.  Calling this for a line that is not
        connected, or is already being disconnected, has no effect.

        :returns: whether this call disconnected the line.
        """
        loop, thread = self._loop, self._thread
        if loop is None or thread is None or not thread.is_alive():
            # not started, or stopped, which disconnected every line.
            return self._disconnect(line)
        if threading.current_thread() is thread:
            return self._disconnect(line)
        return bool(self._call_in_loop(loop, thread, self._disconnect, line))

    def is_line_connected(self, line: int) -> bool:
        """Whether a client is connected to ``line``."""
        return self._table.lookup(line) is not None

    def client_address(self, line: int) -> Optional[str]:
        """Remote address of ``line``, ``'a.b.c.d:port'``, or None."""
        conn = self._table.lookup(line)
        return None if conn is None else conn.client_address

    # event loop

    def _run_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Run event loop in background thread."""
        asyncio.set_event_loop(loop)
        loop.run_forever()

    @staticmethod
    async def _invoke(func: Callable[..., Any], *args: Any) -> Any:
        return func(*args)

    def _call_in_loop(
        self,
        loop: asyncio.AbstractEventLoop,
        thread: threading.Thread,
        func: Callable[..., Any],
        *args: Any,
    ) -> Any:
        """Call ``func(*args)`` on ``loop`` run by ``thread``, blocking for its result."""
        coro = self._invoke(func, *args)
        try:
            future = asyncio.run_coroutine_threadsafe(coro, loop)
        except RuntimeError:
            # loop closed by stop(), which already disconnected every line.
            coro.close()
            return None
        while thread.is_alive():
            try:
                return future.result(timeout=0.5)
            except concurrent.futures.TimeoutError:
                continue
        if future.done():
            return future.result()
        future.cancel()
        return None

    def _create_server_socket(self, host: str, port: int) -> Optional[socket.socket]:
        sock = None
        step = "socket creation"
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            # Windows permits a second bind() of a port in use unless
            # exclusive use is requested; POSIX refuses it by default.
            if hasattr(socket, "SO_EXCLUSIVEADDRUSE"):
                step = "set socket options"
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_EXCLUSIVEADDRUSE, 1)
            step = "set non-blocking"
            sock.setblocking(False)
            step = "bind socket"
            sock.bind((host, port))
            step = "listen"
            sock.listen(socket.SOMAXCONN)
        except OSError as err:
            logger.error(
                "TELNET server %s failed (%s) for %s: %s",
                step,
                err.errno,
                accessories.format_address(host, port),
                err.strerror,
            )
            if sock is not None:
                sock.close()
            return None
        return sock

    def _shutdown(self) -> None:
        for line in self._table.lines():
            self._disconnect(line)
        assert self._loop is not None and self._sock is not None
        self._loop.remove_reader(self._sock)
        self._sock.close()
        self._sock = None

    def _on_accept_ready(self) -> None:
        assert self._sock is not None and self._loop is not None
        try:
            client, peername = self._sock.accept()
        except (BlockingIOError, InterruptedError):
            return
        except OSError as err:
            logger.warning("TELNET accept failed (%s): %s", err.errno, err.strerror)
            return

        try:
            client.setblocking(False)
        except OSError as err:
            logger.warning(
                "TELNET client set non-blocking failed (%s): %s",
                err.errno,
                err.strerror,
            )
            client.close()
            return

        with self._table.lock:
            line = self._table.reserve()
            if line is None:
                logger.warning(
                    "TELNET accept from %s failed - no more lines",
                    accessories.format_address(*peername[:2]),
                )
                client.close()
                return
            conn = TelnetLine(line, client, peername)
            self._table.insert(line, conn)

        if self._connect_callback is not None and not self._callback(
            self._connect_callback, line, default=False
        ):
            logger.warning("TELNET accept failed - connect callback refused")
            with self._table.lock:
                if self._table.lookup(line) is conn:
                    self._table.remove(line)
                conn.close()
            return
        if conn.closed:
            # disconnected from within the connect callback.
            return

        self._loop.add_reader(client, self._on_read_ready, client)
        logger.info(
            "TELNET connection to line %d accepted from %s", line, conn.client_address
        )

    def _on_read_ready(self, sock: socket.socket) -> None:
        line = self._table.lookup_socket(sock)
        if line is None:
            return
        conn = self._table.lookup(line)
        assert conn is not None

        try:
            data = sock.recv(self.recv_size)
        except (BlockingIOError, InterruptedError):
            return
        except OSError as err:
            logger.warning(
                "TELNET error (%s) reading socket for line %d: %s",
                err.errno,
                line,
                err.strerror,
            )
            self._disconnect(line)
            return

        if not data:
            logger.info("TELNET line %d closed by client", line)
            self._disconnect(line)
            return

        for byte in data:
            with self._table.lock:
                if conn.closing or conn.closed:
                    break
                recv_inband = conn.feed_byte(byte)
            if recv_inband:
                self._callback(self._receive_callback, line, byte)

    def _disconnect(self, line: int) -> bool:
        with self._table.lock:
            conn = self._table.lookup(line)
            if conn is None or conn.closing:
                return False
            conn.closing = True

        # the line remains in the table while the host is informed.
        if self._disconnect_callback is not None:
            self._callback(self._disconnect_callback, line)

        with self._table.lock:
            if self._loop is not None and not conn.closed:
                self._loop.remove_reader(conn.sock)
            conn.close()
            self._table.remove(line)
        logger.info("TELNET line %d disconnected", line)
        return True

    @staticmethod
    def _callback(func: Callable[..., Any], *args: Any, default: Any = None) -> Any:
        """Call host callback, logging rather than raising its exceptions."""
        try:
            return func(*args)
        except Exception:
            accessories.log_exception(logger.warning, *sys.exc_info())
            return default
