"""
Dashboard package exports.
"""

from .model import DashboardModel

__all__ = ["DashboardModel"]
