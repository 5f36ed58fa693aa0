"""
Core models shared across the waste collection system
"""

from .user_info.user import User

__all__ = [
    'User',
]
