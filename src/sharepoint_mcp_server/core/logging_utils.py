"""
Shared logging utilities for SharePoint MCP Server tools.
"""
import logging
from pathlib import Path

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Tool group name -> log filename under logs/tools
TOOL_LOG_FILES = {
    "site": "site-management.log",
    "lists": "list-management.log",
    "items": "list-item-management.log",
    "fields": "field-management.log",
    "views": "view-management.log",
    "connection": "connection-checks.log",
}


def configure_tool_logger(tool_name: str, level: int = logging.INFO, logs_dir: Path = Path("logs")) -> logging.Logger:
    """Attach a file handler for one tool group and stop propagation to the root logger."""
    logger = logging.getLogger(f"sharepoint.tools.{tool_name}")
    logger.setLevel(level)
    logger.handlers.clear()

    tools_logs_dir = logs_dir / "tools"
    tools_logs_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(tools_logs_dir / TOOL_LOG_FILES.get(tool_name, f"{tool_name}.log"), mode='a')
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_tool_logger(tool_name: str) -> logging.Logger:
    """Get a tool logger, configuring its file handler if the server has not.

    Args:
        tool_name: The tool group name (e.g., 'site', 'lists', 'items')

    Returns:
        A logger instance
    """
    logger = logging.getLogger(f"sharepoint.tools.{tool_name}")
    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        try:
            logger = configure_tool_logger(tool_name)
        except OSError:
            # Read-only working directory: fall back to the root handlers
            logger.propagate = True
    return logger
