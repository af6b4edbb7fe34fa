from __future__ import annotations

"""
Light client • CLI
==================

Command-line entry points:
- run.py : run the sampling pipeline against a JSON fixture or a synthetic
           block stream and print one line per completed block.

Each CLI is importable as a module (for programmatic use) and runnable as a
script (e.g., `python -m lightclient.cli.run`).
"""

from lightclient.version import __version__

__all__ = ["__version__"]
