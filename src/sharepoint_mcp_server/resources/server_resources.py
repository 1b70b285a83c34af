"""
Server Resources for SharePoint MCP Server

Provides server status and health check resources.
"""

import time

from ..core.dependency_injection import get_config, get_rest_client
from ..tools import get_sorted_tools


async def server_status() -> str:
    """Current server status and configuration summary."""
    try:
        config = get_config()
        info = config.get_server_info()
        tools = get_sorted_tools()

        return f"""# SharePoint MCP Server Status

**Timestamp**: {time.strftime("%Y-%m-%d %H:%M:%S UTC", time.gmtime())}
**Version**: {info['version']}
**Transport**: {info['transport']}
**Read-only mode**: {info['read_only_mode']}

## Authentication
- **Scheme**: {info['auth_type']}
- **Credentials configured**: {'Yes' if info['auth_configured'] else 'No'}
- **Site URL**: {info['site_url'] or '(not configured)'}

## Available Tools
{chr(10).join(f"- {name}: {(func.__doc__ or '').strip().splitlines()[0] if func.__doc__ else ''}" for name, func in tools.items())}
"""

    except Exception as e:
        return f"# Server Status Error\n\n**Error**: {str(e)}\n\nPlease check server logs for details."


async def health_check() -> str:
    """Health check: authenticates against the configured site without exposing the token."""
    try:
        config = get_config()
        auth_status = False
        auth_error = ""
        if config.site_url:
            try:
                await get_rest_client().prepare_headers(config.site_url)
                auth_status = True
            except Exception as e:
                auth_error = str(e)
        else:
            auth_error = "SHAREPOINT_SITE_URL is not configured"

        return f"""# Health Check

**Overall Status**: {'Healthy' if auth_status else 'Degraded'}
**Timestamp**: {time.strftime("%Y-%m-%d %H:%M:%S UTC", time.gmtime())}

## Component Health
- **Authentication ({config.auth_type})**: {'healthy' if auth_status else 'failed'}
- **Tools Registry**: Active ({len(get_sorted_tools())} tools)

## Recommendations
{'Server is operating normally' if auth_status else f'Check authentication configuration and credentials: {auth_error}'}
"""

    except Exception as e:
        return f"# Health Check Error\n\n**Error**: {str(e)}\n\n**Status**: unhealthy\n**Recommendation**: Check server logs and configuration"
