"""
Field Management Tools Module

This module provides tools for managing the columns of SharePoint lists.
"""

from .field_tools import manage_fields

__all__ = ["manage_fields"]
