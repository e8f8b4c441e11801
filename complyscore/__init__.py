"""
ComplyScore: Compliance Risk-Assessment Engine
==============================================

Deterministic HIPAA risk scoring, rule-based answer auto-population and
progressive assessment management. The engine is a library: it performs no
I/O and leaves persistence, rendering and transport to the host application.
"""

from ._version import __version__

__author__ = "ComplyScore Team"
__license__ = "MIT"

__all__ = ["__version__"]
