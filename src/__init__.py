"""
Source package initialization.
"""

from . import email_processing
from . import integrations
from . import storage

__all__ = [
    'email_processing',
    'integrations',
    'storage',
]
