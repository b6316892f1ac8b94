"""
Configuration package for the automation pipeline.
"""

from .analyzer_config import AUTOMATION_CONFIG

__all__ = ['AUTOMATION_CONFIG']
