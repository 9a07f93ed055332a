"""
pebble CLI - inspect and exercise sqrt(T) checkpoint retention

Commands:
- pebble records list/verify - Stored record inspection
- pebble recover - Dry-run warm recovery of a namespace
- pebble simulate - Synthetic workload checked by the pebble game
- pebble version
"""

from pebblekit import __version__

__all__ = ["__version__"]
