"""Accessory functions."""
# std imports
import traceback
import ipaddress
import logging

__all__ = ('format_address', 'parse_address', 'make_logger',
           'log_exception', 'repr_mapping')


def format_address(host, port=0):
    """
    Return printable ``host:port`` for an IPv4 address.

    The port is omitted when it is zero, and the empty (any) address is
    displayed as ``0.0.0.0``.

    Example::

        >>> format_address('127.0.0.1', 2323)
        '127.0.0.1:2323'
    """
    host = host or '0.0.0.0'
    if port:
        return '{0}:{1}'.format(host, port)
    return host


def parse_address(text, default_host='', default_port=0):
    """
    Parse an IPv4 server address, returning ``(host, port)`` or ``None``.

    Accepted forms are ``port``, ``:port``, ``a.b.c.d`` and
    ``a.b.c.d:port``.  Any part not given is taken from ``default_host``
    and ``default_port``.

    Example::

        >>> parse_address('10.0.0.1:2323')
        ('10.0.0.1', 2323)
        >>> parse_address(':23', default_host='127.0.0.1')
        ('127.0.0.1', 23)
    """
    if not text:
        return None

    host, port = default_host, default_port
    if text.startswith(':'):
        port = _parse_port(text[1:])
        return None if port is None else (host, port)

    if text.isdigit():
        port = _parse_port(text)
        return None if port is None else (host, port)

    if ':' in text:
        text, _port = text.split(':', 1)
        port = _parse_port(_port)
        if port is None:
            return None
    try:
        host = str(ipaddress.IPv4Address(text))
    except ValueError:
        return None
    return host, port


def _parse_port(text):
    if not text.isdigit():
        return None
    port = int(text)
    if port > 0xffff:
        return None
    return port


_DEFAULT_LOGFMT = ' '.join(('%(asctime)s',
                            '%(levelname)s',
                            '%(filename)s:%(lineno)d',
                            '%(message)s'))


def make_logger(name, loglevel='info', logfile=None, logfmt=_DEFAULT_LOGFMT):
    """Create and return simple logger for given arguments."""
    lvl = getattr(logging, loglevel.upper())
    logging.getLogger().setLevel(lvl)

    _cfg = {'format': logfmt}
    if logfile:
        _cfg['filename'] = logfile
    logging.basicConfig(**_cfg)
    return logging.getLogger(name)


def log_exception(log_fn, e_type, e_value, e_tb):
    """Write traceback of an exception, one row per call of ``log_fn``."""
    rows_tbk = [
        line for line in "\n".join(traceback.format_tb(e_tb)).split("\n") if line
    ]
    rows_exc = [
        line.rstrip() for line in traceback.format_exception_only(e_type, e_value)
    ]

    for line in rows_tbk + rows_exc:
        log_fn(line)


def repr_mapping(mapping):
    """Return printable string, 'key=value [key=value ...]' for mapping."""
    return ' '.join('='.join(map(str, kv)) for kv in mapping.items())
