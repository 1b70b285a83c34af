"""
List Management Tools Module

This module provides tools for managing SharePoint lists and libraries.
"""

from .list_tools import manage_lists

__all__ = ["manage_lists"]
