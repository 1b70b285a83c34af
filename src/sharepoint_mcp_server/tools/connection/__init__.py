"""
Connection Tools Module

This module provides the authentication check tool.
"""

from .connection_tools import check_authentication

__all__ = ["check_authentication"]
