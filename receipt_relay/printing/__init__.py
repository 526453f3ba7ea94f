"""
Printing subsystem for Receipt Relay.

This package groups printing-related functionality:

- order: order/receipt data model accepted from POS clients
- escpos: ESC/POS command encoder
- raster: bitmap to raster conversion, QR images and the URL image cache
- receipt: KOT and bill layouts
- backends: printer transports (CUPS, Windows spooler, direct devices)
- registry: cached printer list with default fallback
- jobs: job records and history store
- worker: print orchestration and background workers

For convenience, common names are re-exported for easy import.
"""

from .order import *
from .escpos import *
from .raster import *
from .receipt import *
from .backends import *
from .registry import *
from .jobs import *
from .worker import *
