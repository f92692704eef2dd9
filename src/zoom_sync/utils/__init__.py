"""
Utility helpers for the display sync engine
"""

from .enum_helper import EnumHelper

__all__ = [
    'EnumHelper',
]
