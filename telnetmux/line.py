"""
Module provides class :class:`TelnetLine`, a per-connection IAC interpreter.

After CR, any byte but LF or NUL is data and ends the line ending, with
one exception: IAC following CR begins a command, as it would anywhere
else, rather than being forwarded as data byte 255.
"""
# std imports
import logging
import socket

# local imports
from .accessories import format_address
from .telopt import (ABORT, AO, AYT, BRK, CMD_EOR, CR, DM, DO, DONT, EC, ECHO,
                     EL, EOF, GA, IAC, IP, LF, NOP, SGA, SUSP, WILL, WONT,
                     name_command, name_commands, name_option, theNULL)

__all__ = ('TelnetLine', 'Option', 'DISABLED', 'ENABLED', 'NEGOTIATING',
           'PHASE_NORMAL', 'PHASE_IAC', 'PHASE_WILL', 'PHASE_WONT',
           'PHASE_DO', 'PHASE_DONT', 'PHASE_CR')

#: Option negotiation states.
DISABLED, ENABLED, NEGOTIATING = 'disabled', 'enabled', 'negotiating'

#: Interpreter phases, each names what the previous byte(s) were.
PHASE_NORMAL = 'normal'
PHASE_IAC = 'iac'
PHASE_WILL = 'will'
PHASE_WONT = 'wont'
PHASE_DO = 'do'
PHASE_DONT = 'dont'
PHASE_CR = 'cr'

#: 2-byte IAC commands that are understood and ignored.
NOARG_COMMANDS = (NOP, DM, BRK, IP, AO, AYT, EC, EL, GA,
                  CMD_EOR, ABORT, SUSP, EOF)

_NEGOTIATION_PHASE = {WILL: PHASE_WILL, WONT: PHASE_WONT,
                      DO: PHASE_DO, DONT: PHASE_DONT}


class TelnetLine(object):
    """
    One Telnet connection, addressed by its line number.

    Telnet IAC interpreter for the server end of a single connection.
    Every byte received from the socket is passed to :meth:`feed_byte`,
    which returns True when that byte is data for the host, and writes any
    negotiation reply directly to the socket.

    Only two options are ever agreed to, ECHO (:rfc:`857`) and SUPPRESS
    GO-AHEAD (:rfc:`858`); all others are refused.  BINARY is never
    negotiated, and there is no sub-negotiation.

    Writes are raw, non-blocking ``send()`` calls.  A write that fails or
    is short is reported by a False return value, nothing is buffered.
    """

    #: Whether :meth:`close` has been called.
    closed = False

    #: Set by the owning server while disconnect callbacks are running.
    closing = False

    def __init__(self, line, sock, peername=None, log=None):
        """
        Class initializer.

        :param int line: line number assigned by the server.
        :param socket.socket sock: connected, non-blocking client socket.
        :param tuple peername: remote ``(ip, port)``; queried from ``sock``
            when not given.
        :param logging.Logger log: target logger, if None is given, one is
            created using the namespace ``'telnetmux.line'``.
        """
        self.line = line
        self.sock = sock
        self.log = log or logging.getLogger(__name__)

        if peername is None:
            try:
                peername = sock.getpeername()
            except OSError as err:
                self.log.warning('getpeername() failed ({0}) for line {1}'
                                 .format(err.errno, line))
                peername = ('0.0.0.0', 0)
        self.peername = tuple(peername[:2])

        #: Current interpreter phase.
        self.phase = PHASE_NORMAL

        #: State of options performed by our end (WILL/WONT sent by us,
        #: DO/DONT received).
        self.local_option = Option('local_option', self.log)
        self.local_option[ECHO] = DISABLED
        self.local_option[SGA] = DISABLED

        #: State of options performed by the client (DO/DONT sent by us,
        #: WILL/WONT received).
        self.remote_option = Option('remote_option', self.log)
        self.remote_option[SGA] = DISABLED

    def __repr__(self):
        """Description of line and negotiation state."""
        return ('<TelnetLine {self.line} {addr} phase:{self.phase} '
                'echo:{self.local_echo} local-sga:{self.local_sga} '
                'remote-sga:{self.remote_sga}>'
                .format(self=self, addr=self.client_address))

    # public properties

    @property
    def client_address(self):
        """Remote address of this connection, ``'a.b.c.d:port'``."""
        return format_address(*self.peername)

    @property
    def local_echo(self):
        """
        State of the ECHO option performed by the server end.

        ENABLED means the server echoes and the client has stopped its
        own local echo.
        """
        return self.local_option[ECHO]

    @property
    def local_sga(self):
        """State of SUPPRESS-GO-AHEAD for data sent by the server."""
        return self.local_option[SGA]

    @property
    def remote_sga(self):
        """State of SUPPRESS-GO-AHEAD for data sent by the client."""
        return self.remote_option[SGA]

    # inbound

    def feed_byte(self, byte):
        """
        Feed a single byte into Telnet option state machine.

        :param int byte: an 8-bit byte value as integer (0-255), or
            a bytes array of length 1.
        :rtype bool: Whether the given ``byte`` is data to be forwarded to
            the host.  ``False`` is returned for each byte of an IAC
            command, for NUL, and for the LF or NUL following CR.
        """
        if isinstance(byte, int):
            byte = bytes([byte])

        phase = self.phase
        if phase == PHASE_NORMAL:
            if byte == IAC:
                self.phase = PHASE_IAC
                return False
            if byte == CR:
                self.phase = PHASE_CR
                return True
            return byte != theNULL

        if phase == PHASE_CR:
            # CR LF and CR NUL are both one end of line, CR was already
            # forwarded on its own.
            if byte in (LF, theNULL):
                self.phase = PHASE_NORMAL
                return False
            if byte == IAC:
                self.phase = PHASE_IAC
                return False
            self.phase = PHASE_NORMAL
            return True

        if phase == PHASE_IAC:
            self.phase = PHASE_NORMAL
            if byte == IAC:
                # escaped, literal byte 255.
                return True
            if byte in _NEGOTIATION_PHASE:
                self.phase = _NEGOTIATION_PHASE[byte]
            elif byte in NOARG_COMMANDS:
                self.log.debug('recv IAC {}'.format(name_command(byte)))
            else:
                self.log.warning('TELNET received unimplemented command '
                                 '{0} on line {1}'
                                 .format(name_command(byte), self.line))
            return False

        # parse 3rd and final byte of IAC DO, DONT, WILL, WONT.
        self.phase = PHASE_NORMAL
        self.log.debug('recv IAC {} {}'.format(phase.upper(), name_option(byte)))
        {PHASE_WILL: self.handle_will,
         PHASE_WONT: self.handle_wont,
         PHASE_DO: self.handle_do,
         PHASE_DONT: self.handle_dont}[phase](byte)
        return False

    # outbound

    def send(self, data):
        """
        Write data to the client, escaping ``IAC``.

        :param bytes data: bytes to write.
        :rtype: bool
        :returns: whether all bytes were accepted by the socket.
        """
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError("data expected bytes, got {0}".format(type(data)))
        return self._write(bytes(data).replace(IAC, IAC + IAC))

    def send_file(self, path):
        """
        Write a text file to the client, line by line.

        Each line of the file has its own line ending removed and is sent
        followed by CR LF.  Used for connection banners.

        :param str path: file to send.
        :rtype: bool
        :returns: False if the file cannot be read or any send fails.
        """
        try:
            with open(path, 'rb') as fin:
                for text in fin:
                    if not self.send(text.rstrip(b'\r\n') + b'\r\n'):
                        return False
        except OSError as err:
            self.log.warning('cannot send file {0!r} to line {1}: {2}'
                             .format(path, self.line, err))
            return False
        return True

    def send_command(self, cmd, opt):
        """
        Send Is-A-Command 3-byte negotiation command.

        :rtype: bool
        :returns: whether the command was written.
        """
        ok = self._write(IAC + cmd + opt)
        if ok:
            self.log.debug('send {}'.format(name_commands(IAC + cmd + opt)))
        else:
            self.log.warning('TELNET failed to send command {} {}'.format(
                name_command(cmd), name_option(opt)))
        return ok

    def enable_option(self, opt, want=True):
        """
        Request a transition of local option ECHO or SGA.

        Sends ``WILL opt`` when ``want`` is True, ``WONT opt`` otherwise,
        and the option enters NEGOTIATING until the client answers with DO
        or DONT.  Nothing is sent when the option is already in the desired
        state, or already negotiating.

        :rtype: bool
        :returns: whether a command was sent.
        """
        if opt not in (ECHO, SGA):
            raise ValueError('cannot negotiate {0}, only ECHO or SGA.'
                             .format(name_option(opt)))
        state = self.local_option[opt]
        if state == NEGOTIATING:
            self.log.debug('skip {} {}; negotiating'.format(
                'WILL' if want else 'WONT', name_option(opt)))
            return False
        if state == (ENABLED if want else DISABLED):
            return False
        if not self.send_command(WILL if want else WONT, opt):
            # state unchanged, so that the request may be repeated.
            return False
        self.local_option[opt] = NEGOTIATING
        return True

    def set_local_echo(self, enable):
        """
        Enable or disable local echo performed by the client terminal.

        Telnet echo negotiation is from the point of view of the end doing
        the echo.  To stop the client echoing locally, the server offers
        ``WILL ECHO``, to restore it the server sends ``WONT ECHO``.
        """
        return self.enable_option(ECHO, not enable)

    def suppress_go_ahead(self):
        """Negotiate SUPPRESS-GO-AHEAD in both directions."""
        self.enable_option(SGA, True)
        if self.remote_option[SGA] == DISABLED and self.send_command(DO, SGA):
            self.remote_option[SGA] = NEGOTIATING

    def close(self):
        """Close the client socket."""
        if self.closed:
            return
        self.closed = True
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # peer already gone.
            pass
        self.sock.close()

    # DO, DONT, WILL, and WONT negotiation

    def handle_will(self, opt):
        """
        Process byte 3 of series (IAC, WILL, opt) received by remote end.

        WILL SGA is answered DO SGA, unless it is the reply to our own DO
        SGA, or already agreed.  A client offering WILL ECHO is claiming
        the echo role that belongs to the server end: the server answers by
        offering WILL ECHO itself, or, when it already echoes, refuses the
        client with DONT ECHO.  All others are answered DONT.
        """
        if opt == SGA:
            self.log.debug('TELNET client SUPPRESS GO AHEAD accepted')
            if self.remote_option[SGA] == DISABLED:
                self.send_command(DO, SGA)
            self.remote_option[SGA] = ENABLED
        elif opt == ECHO:
            state = self.local_option[ECHO]
            if state == DISABLED:
                self.enable_option(ECHO, True)
            elif state == ENABLED:
                self.send_command(DONT, ECHO)
        else:
            self.log.debug('TELNET client {} declined'.format(name_option(opt)))
            self.send_command(DONT, opt)

    def handle_wont(self, opt):
        """
        Process byte 3 of series (IAC, WONT, opt) received by remote end.

        It is not possible to decline a WONT.  The client refusing SUPPRESS
        GO-AHEAD is fatal to a character-at-a-time session, but the
        connection remains open: half-duplex operation is not supported.
        """
        if opt == SGA:
            self.log.critical('TELNET client on line {0} refused SUPPRESS '
                              'GO AHEAD, half-duplex is not supported'
                              .format(self.line))
            if self.remote_option.enabled(SGA):
                self.send_command(DONT, SGA)
            self.remote_option[SGA] = DISABLED
        elif opt == ECHO:
            self.log.debug('TELNET client will not echo')
        else:
            self.log.warning('TELNET received WONT {}'.format(name_option(opt)))

    def handle_do(self, opt):
        """
        Process byte 3 of series (IAC, DO, opt) received by remote end.

        DO ECHO completes our WILL ECHO, and the client stops echoing.  An
        unsolicited DO ECHO is declined with WONT ECHO when we do not echo,
        and ignored when we already do.  DO SGA is answered WILL SGA unless
        already offered.  All others are answered WONT.
        """
        if opt == SGA:
            self.log.debug('TELNET local SUPPRESS GO AHEAD enabled')
            if self.local_option[SGA] == DISABLED:
                self.send_command(WILL, SGA)
            self.local_option[SGA] = ENABLED
        elif opt == ECHO:
            state = self.local_option[ECHO]
            if state == NEGOTIATING:
                self.log.debug('TELNET client local echo disabled')
                self.local_option[ECHO] = ENABLED
            elif state == DISABLED:
                self.send_command(WONT, ECHO)
        else:
            self.log.warning('TELNET received unexpected DO {}'.format(
                name_option(opt)))
            self.send_command(WONT, opt)

    def handle_dont(self, opt):
        """
        Process byte 3 of series (IAC, DONT, opt) received by remote end.

        A DONT can not be declined.  It is acknowledged with WONT only when
        it disables an option that was in effect.
        """
        if opt == SGA:
            self.log.critical('TELNET SUPPRESS GO AHEAD option declined by '
                              'client on line {0}'.format(self.line))
            if self.local_option.enabled(SGA):
                self.send_command(WONT, SGA)
            self.local_option[SGA] = DISABLED
        elif opt == ECHO:
            self.log.debug('TELNET client local echo enabled')
            if self.local_option.enabled(ECHO):
                self.send_command(WONT, ECHO)
            self.local_option[ECHO] = DISABLED
        else:
            self.log.warning('TELNET received unexpected DONT {}'.format(
                name_option(opt)))

    # private

    def _write(self, buf):
        try:
            count = self.sock.send(buf)
        except OSError as err:
            self.log.warning('TELNET send failed ({0}) for line {1}: {2}'
                             .format(err.errno, self.line, err.strerror))
            return False
        if count != len(buf):
            self.log.warning('TELNET short send on line {0}, {1} of {2} bytes'
                             .format(self.line, count, len(buf)))
            return False
        return True


class Option(dict):
    """
    Telnet option state negotiation helper class.

    This class simply acts as a logging decorator for state changes of
    a dictionary describing telnet option negotiation.
    """

    def __init__(self, name, log):
        """
        Class initializer.

        :param str name: decorated name representing option class, such as
            'local_option' or 'remote_option'.
        :param logging.Logger log: logging instance where debug information
            of state changes is recorded (as DEBUG).
        """
        self.name, self.log = name, log
        dict.__init__(self)

    def enabled(self, key):
        """
        Return True if option is enabled.

        :param bytes key: telnet option
        :rtype: bool
        """
        return self.get(key, None) == ENABLED

    def __setitem__(self, key, value):
        # the real purpose of this class, tracking state negotiation.
        if value != dict.get(self, key, None):
            self.log.debug('{}[{}] = {}'.format(self.name, name_option(key), value))
        dict.__setitem__(self, key, value)
