"""MCP Server definition and tool registration"""
import inspect
from mcp.server.fastmcp import FastMCP
import logging

from sf_apex_mcp.config import get_config

logger = logging.getLogger(__name__)


def parse_docstring(func):
    """A simple parser for a standard Python docstring."""
    docstring = inspect.getdoc(func)
    if not docstring:
        return "No description available.", {}

    lines = docstring.strip().split('\n')
    description = lines[0].strip()
    arg_descriptions = {}
    args_section = False

    for line in lines[1:]:
        line = line.strip()
        if line.lower() in ('args:', 'parameters:'):
            args_section = True
            continue
        if line.lower() in ('returns:', 'raises:'):
            args_section = False
            continue
        if args_section and ':' in line:
            arg_name, arg_desc = line.split(':', 1)
            arg_descriptions[arg_name.strip()] = arg_desc.strip()

    return description, arg_descriptions


_config = get_config()
mcp_server = FastMCP(name=_config.mcp_server_name, host=_config.http_host, port=_config.http_port)

tool_registry = {}


def add_tool_to_registry(func):
    """
    Parses a function docstring and adds it to the global tool_registry.
    """
    tool_name = func.__name__

    description, _ = parse_docstring(func)

    tool_registry[tool_name] = {
        "name": tool_name,
        "description": description,
        "function": func
    }

    mcp_server.tool(name=tool_name, description=description)(func)
    logger.info(f"✅ Registered tool: '{tool_name}'")


def register_tool(func):
    """A decorator that registers a function as a tool."""
    add_tool_to_registry(func)
    return func


__all__ = ['mcp_server', 'register_tool', 'tool_registry']
