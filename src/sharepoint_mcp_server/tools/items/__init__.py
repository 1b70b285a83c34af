"""
List Item Management Tools Module

This module provides tools for managing items in SharePoint lists.
"""

from .item_tools import manage_list_items

__all__ = ["manage_list_items"]
