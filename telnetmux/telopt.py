"""Telnet command and option byte constants, :rfc:`854` and :rfc:`855`."""

IAC = b"\xff"
DONT = b"\xfe"
DO = b"\xfd"
WONT = b"\xfc"
WILL = b"\xfb"
SB = b"\xfa"
GA = b"\xf9"
EL = b"\xf8"
EC = b"\xf7"
AYT = b"\xf6"
AO = b"\xf5"
IP = b"\xf4"
BRK = b"\xf3"
DM = b"\xf2"
NOP = b"\xf1"
SE = b"\xf0"

BINARY = b"\x00"
ECHO = b"\x01"
RCP = b"\x02"
SGA = b"\x03"
NAMS = b"\x04"
STATUS = b"\x05"
TM = b"\x06"
RCTE = b"\x07"
NAOL = b"\x08"
NAOP = b"\t"
NAOCRD = b"\n"
NAOHTS = b"\x0b"
NAOHTD = b"\x0c"
NAOFFD = b"\r"
NAOVTS = b"\x0e"
NAOVTD = b"\x0f"
NAOLFD = b"\x10"
XASCII = b"\x11"
LOGOUT = b"\x12"
BM = b"\x13"
DET = b"\x14"
SUPDUP = b"\x15"
SUPDUPOUTPUT = b"\x16"
SNDLOC = b"\x17"
TTYPE = b"\x18"
EOR = b"\x19"
TTYLOC = b"\x1c"
VT3270REGIME = b"\x1d"
X3PAD = b"\x1e"
NAWS = b"\x1f"
TSPEED = b" "
LFLOW = b"!"
LINEMODE = b'"'
XDISPLOC = b"#"
ENVIRON = b"$"
AUTHENTICATION = b"%"
ENCRYPT = b"&"
NEW_ENVIRON = b"'"
TN3270E = b"("
XAUTH = b")"
CHARSET = b"*"
RSP = b"+"
COM_PORT_OPTION = b","
SUPPRESS_LOCAL_ECHO = b"-"
TLS = b"."
KERMIT = b"/"
SEND_URL = b"0"
FORWARD_X = b"1"
EXOPL = b"\xff"

theNULL = b"\x00"
CR = b"\r"
LF = b"\n"

(EOF, SUSP, ABORT, CMD_EOR) = (bytes([const]) for const in range(236, 240))

__all__ = (
    "ABORT",
    "AO",
    "AUTHENTICATION",
    "AYT",
    "BINARY",
    "BM",
    "BRK",
    "CHARSET",
    "CMD_EOR",
    "COM_PORT_OPTION",
    "CR",
    "DET",
    "DM",
    "DO",
    "DONT",
    "EC",
    "ECHO",
    "EL",
    "ENCRYPT",
    "ENVIRON",
    "EOF",
    "EOR",
    "EXOPL",
    "FORWARD_X",
    "GA",
    "IAC",
    "IP",
    "KERMIT",
    "LF",
    "LFLOW",
    "LINEMODE",
    "LOGOUT",
    "NAMS",
    "NAOCRD",
    "NAOFFD",
    "NAOHTD",
    "NAOHTS",
    "NAOL",
    "NAOLFD",
    "NAOP",
    "NAOVTD",
    "NAOVTS",
    "NAWS",
    "NEW_ENVIRON",
    "NOP",
    "RCP",
    "RCTE",
    "RSP",
    "SB",
    "SE",
    "SEND_URL",
    "SGA",
    "SNDLOC",
    "STATUS",
    "SUPDUP",
    "SUPDUPOUTPUT",
    "SUPPRESS_LOCAL_ECHO",
    "SUSP",
    "TLS",
    "TM",
    "TN3270E",
    "TSPEED",
    "TTYLOC",
    "TTYPE",
    "VT3270REGIME",
    "WILL",
    "WONT",
    "X3PAD",
    "XASCII",
    "XAUTH",
    "XDISPLOC",
    "theNULL",
    "name_command",
    "name_commands",
    "name_option",
)

#: Commands that may follow IAC; option bytes share values with these
#: (IAC and EXOPL are both 255) so commands and options are named apart.
_DEBUG_CMDS = dict(
    [
        (value, key)
        for key, value in globals().items()
        if key
        in (
            "IAC",
            "DONT",
            "DO",
            "WONT",
            "WILL",
            "SB",
            "GA",
            "EL",
            "EC",
            "AYT",
            "AO",
            "IP",
            "BRK",
            "DM",
            "NOP",
            "SE",
            "EOF",
            "SUSP",
            "ABORT",
            "CMD_EOR",
        )
    ]
)

_DEBUG_OPTS = {
    BINARY: "TRANSMIT-BINARY",
    ECHO: "ECHO",
    RCP: "RECONNECTION",
    SGA: "SUPPRESS-GO-AHEAD",
    NAMS: "AMSN",
    STATUS: "STATUS",
    TM: "TIMING-MARK",
    RCTE: "RCTE",
    NAOL: "OUTPUT-LINE-WIDTH",
    NAOP: "OUTPUT-PAGE-SIZE",
    NAOCRD: "NAOCRD",
    NAOHTS: "NAOHTS",
    NAOHTD: "NAOHTD",
    NAOFFD: "NAOFFD",
    NAOVTS: "NAOVTS",
    NAOVTD: "NAOVTD",
    NAOLFD: "NAOLFD",
    XASCII: "EXTEND-ASCII",
    LOGOUT: "LOGOUT",
    BM: "BM",
    DET: "DET",
    SUPDUP: "SUPDUP",
    SUPDUPOUTPUT: "SUPDUP-OUTPUT",
    SNDLOC: "SEND-LOCATION",
    TTYPE: "TERMINAL-TYPE",
    EOR: "END-OF-RECORD",
    TTYLOC: "TTYLOC",
    VT3270REGIME: "3270-REGIME",
    X3PAD: "X.3-PAD",
    NAWS: "NAWS",
    TSPEED: "TERMINAL-SPEED",
    LFLOW: "TOGGLE-FLOW-CONTROL",
    LINEMODE: "LINEMODE",
    XDISPLOC: "X-DISPLAY-LOCATION",
    ENVIRON: "ENVIRON",
    AUTHENTICATION: "AUTHENTICATION",
    ENCRYPT: "ENCRYPT",
    NEW_ENVIRON: "NEW-ENVIRON",
    TN3270E: "TN3270E",
    XAUTH: "XAUTH",
    CHARSET: "CHARSET",
    RSP: "RSP",
    COM_PORT_OPTION: "COM-PORT-OPTION",
    SUPPRESS_LOCAL_ECHO: "SUPPRESS-ECHO",
    TLS: "START-TLS",
    KERMIT: "KERMIT",
    SEND_URL: "SEND-URL",
    FORWARD_X: "FORWARD-X",
    EXOPL: "EXTENDED-OPTIONS-LIST",
}


def _as_bytes(byte):
    if isinstance(byte, int):
        return bytes([byte])
    return byte


def name_command(byte):
    """Return string description for (maybe) telnet command byte."""
    byte = _as_bytes(byte)
    return _DEBUG_CMDS.get(byte, "0x{:02X}".format(byte[0]))


def name_option(byte):
    """Return string description for (maybe) telnet option byte."""
    byte = _as_bytes(byte)
    return _DEBUG_OPTS.get(byte, "0x{:02X}".format(byte[0]))


def name_commands(cmds, sep=" "):
    """
    Return string description for a telnet command sequence.

    The first byte following a negotiation command (WILL, WONT, DO, DONT)
    is named as an option, all others as commands::

        >>> name_commands(IAC + WILL + ECHO)
        'IAC WILL ECHO'
    """
    names, expect_option = [], False
    for byte in cmds:
        value = bytes([byte])
        if expect_option:
            names.append(name_option(value))
            expect_option = False
        else:
            names.append(name_command(value))
            expect_option = value in (WILL, WONT, DO, DONT)
    return sep.join(names)
