"""
Sovereign Attention

Rule-filtered content processing with persistent attention metrics.
"""

__version__ = "0.1.0"

from sovereign_attention.content import Content
from sovereign_attention.processor import LocalProcessor

__all__ = [
    'Content',
    'LocalProcessor',
    '__version__',
]
