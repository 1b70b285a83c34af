"""
View Management Tools Module

This module provides tools for managing SharePoint list views.
"""

from .view_tools import manage_views

__all__ = ["manage_views"]
