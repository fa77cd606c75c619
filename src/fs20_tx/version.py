#!/usr/bin/env python3
"""FS20 RF - a FS20 protocol gateway for CUL/culfw transceivers."""

__version__ = "0.4.2"
VERSION = __version__
