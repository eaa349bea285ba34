"""Tests for telnet command and option naming."""
# 3rd party
import pytest

# local
from telnetmux.telopt import (IAC, WILL, WONT, DO, DONT, SB, SE, NOP, ECHO,
                              SGA, EXOPL, BINARY, TTYPE,
                              name_command, name_option, name_commands)


@pytest.mark.parametrize("given,expected", [
    (IAC, 'IAC'),
    (WILL, 'WILL'),
    (DONT, 'DONT'),
    (NOP, 'NOP'),
    (SE, 'SE'),
    (255, 'IAC'),
    (b'A', '0x41'),
    (0, '0x00'),
])
def test_name_command(given, expected):
    assert name_command(given) == expected


@pytest.mark.parametrize("given,expected", [
    (ECHO, 'ECHO'),
    (SGA, 'SUPPRESS-GO-AHEAD'),
    (BINARY, 'TRANSMIT-BINARY'),
    (TTYPE, 'TERMINAL-TYPE'),
    (EXOPL, 'EXTENDED-OPTIONS-LIST'),
    (3, 'SUPPRESS-GO-AHEAD'),
    (200, '0xC8'),
])
def test_name_option(given, expected):
    assert name_option(given) == expected


def test_name_commands():
    """The byte after a negotiation command is named as an option."""
    assert name_commands(IAC + WILL + ECHO) == 'IAC WILL ECHO'
    assert name_commands(IAC + DO + SGA, sep=',') == 'IAC,DO,SUPPRESS-GO-AHEAD'
    # IAC and EXOPL share byte 255, position decides.
    assert name_commands(IAC + WONT + IAC) == 'IAC WONT EXTENDED-OPTIONS-LIST'
    assert name_commands(IAC + SB + ECHO) == 'IAC SB 0x01'
    assert name_commands(b'') == ''
