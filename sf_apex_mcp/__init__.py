"""MCP server that manages Apex classes through the Salesforce Tooling API"""

__version__ = "0.1.0"
