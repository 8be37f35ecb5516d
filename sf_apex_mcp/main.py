# sf_apex_mcp/main.py
import sys
import logging
from sf_apex_mcp.config import get_config
from sf_apex_mcp.mcp.server import mcp_server, tool_registry
from sf_apex_mcp.utils.logging import setup_structured_logging

# IMPORTANT: import tool modules so @register_tool executes.
from sf_apex_mcp.mcp.tools import manage_apex as _manage_apex  # noqa: F401


def main():
    config = get_config()
    setup_structured_logging(level=config.log_level, use_json=config.log_json)

    if "--http" in sys.argv or "--sse" in sys.argv:
        logging.info("MCP starting (HTTP/SSE)")
        logging.info("Host: %s", config.http_host)
        logging.info("Port: %s", config.http_port)
        logging.info("Tools: %s", ", ".join(tool_registry.keys()) or "(none)")
        mcp_server.run(transport="sse")
    else:
        # stdio is the default; --mcp-stdio is accepted for explicitness
        logging.info("MCP starting (stdio)")
        logging.info("Tools: %s", ", ".join(tool_registry.keys()) or "(none)")
        mcp_server.run(transport="stdio")


if __name__ == "__main__":
    main()
