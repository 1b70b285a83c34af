"""
Site Management Tools Module

This module provides tools for reading and updating SharePoint site properties.
"""

from .site_tools import manage_site

__all__ = ["manage_site"]
