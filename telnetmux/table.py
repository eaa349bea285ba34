"""Module provides class :class:`LineTable`."""
# std imports
import threading

__all__ = ('LineTable',)


class LineTable(object):
    """
    Fixed-capacity table of connected lines.

    Line numbers are small stable integers used directly as list indices,
    with a secondary socket -> line index used to route readiness events.
    A slot is occupied exactly when its socket is present once in the
    socket index; both are changed together while holding :attr:`lock`.

    :attr:`lock` is re-entrant and doubles as the server-wide lock guarding
    per-line protocol state, so callers may hold it across several calls.
    """

    def __init__(self, max_lines=64):
        """
        Class initializer.

        :param int max_lines: number of line slots, at least 1.
        """
        if max_lines < 1:
            raise ValueError('max_lines must be at least 1, got {0}'
                             .format(max_lines))
        self.lock = threading.RLock()
        self._lines = [None] * max_lines
        self._sockets = {}

    def __len__(self):
        return len(self._sockets)

    def __repr__(self):
        return '<LineTable {0}/{1}>'.format(len(self), self.max_lines)

    @property
    def max_lines(self):
        """Number of line slots."""
        return len(self._lines)

    @property
    def is_full(self):
        """Whether every line is occupied."""
        return len(self) >= self.max_lines

    def reserve(self):
        """
        Return the lowest free line number, or None when all are occupied.

        The line is not claimed until :meth:`insert` is called with it.
        """
        with self.lock:
            for line, conn in enumerate(self._lines):
                if conn is None:
                    return line
        return None

    def insert(self, line, conn):
        """
        Occupy ``line`` with connection ``conn``.

        ``conn`` must provide attribute ``sock``, used as the key of the
        socket index.
        """
        with self.lock:
            if not 0 <= line < self.max_lines:
                raise ValueError('line {0} out of range 0..{1}'
                                 .format(line, self.max_lines - 1))
            if self._lines[line] is not None:
                raise ValueError('line {0} is already occupied'.format(line))
            if conn.sock in self._sockets:
                raise ValueError('socket already assigned to line {0}'
                                 .format(self._sockets[conn.sock]))
            self._lines[line] = conn
            self._sockets[conn.sock] = line

    def remove(self, line):
        """Free ``line``, returning the connection it held, if any."""
        with self.lock:
            conn = self.lookup(line)
            if conn is not None:
                self._lines[line] = None
                del self._sockets[conn.sock]
            return conn

    def lookup(self, line):
        """Return connection of ``line``, or None."""
        with self.lock:
            if 0 <= line < self.max_lines:
                return self._lines[line]
        return None

    def lookup_socket(self, sock):
        """Return line number assigned to socket ``sock``, or None."""
        with self.lock:
            return self._sockets.get(sock)

    def lines(self):
        """Return list of occupied line numbers, ascending."""
        with self.lock:
            return sorted(self._sockets.values())
