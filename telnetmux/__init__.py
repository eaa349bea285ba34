"""telnetmux: a Telnet terminal concentrator implemented in python."""
# pylint: disable=wildcard-import,undefined-variable
from .server import *           # noqa
from .table import *            # noqa
from .line import *             # noqa
from .telopt import *           # noqa
from .accessories import *      # noqa

__all__ = (
    server.__all__ +
    table.__all__ +
    line.__all__ +
    telopt.__all__ +
    accessories.__all__
)  # noqa

__author__ = "telnetmux contributors"
__license__ = 'ISC'
__version__ = '1.0.0'
