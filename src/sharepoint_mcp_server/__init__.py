"""
SharePoint MCP Server

FastMCP server for SharePoint site administration through the SharePoint REST API,
with shared-secret and Azure AD certificate authentication.
"""

__version__ = "1.0.0"
__description__ = "FastMCP server for SharePoint site administration"

__all__ = []
