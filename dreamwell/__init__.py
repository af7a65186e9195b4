"""Dreamwell sleep analytics and alarm scheduling engine"""

__version__ = "1.0.0"
