"""
usdx-protocol — hub/spoke value-accounting core и position relayer.
"""

__version__ = "0.3.0"
