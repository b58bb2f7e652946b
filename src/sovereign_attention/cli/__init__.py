"""
Sovereign Attention command line interface.
"""

from sovereign_attention import __version__

__all__ = ['__version__']
