"""
SharePoint Management Tools Module

This module provides tools for SharePoint site administration.
"""

from .connection.connection_tools import check_authentication
from .fields.field_tools import manage_fields
from .items.item_tools import manage_list_items
from .lists.list_tools import manage_lists
from .site.site_tools import manage_site
from .views.view_tools import manage_views

# Sort tools alphabetically for consistent export order
def get_sorted_tools():
    """Return tools sorted alphabetically by name."""
    tools = {
        "check_authentication": check_authentication,
        "manage_fields": manage_fields,
        "manage_list_items": manage_list_items,
        "manage_lists": manage_lists,
        "manage_site": manage_site,
        "manage_views": manage_views,
    }
    return dict(sorted(tools.items()))

# Export tools in alphabetical order
__all__ = sorted([
    "check_authentication",
    "manage_fields",
    "manage_list_items",
    "manage_lists",
    "manage_site",
    "manage_views",
    "get_sorted_tools",
])
