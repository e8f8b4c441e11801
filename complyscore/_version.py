# -*- coding: utf-8 -*-
"""Version information for ComplyScore."""

__version__ = "0.4.0"
