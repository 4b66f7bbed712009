#!/usr/bin/env python3
"""
Run MCP server in STDIO mode for desktop MCP clients
Uses your local Azure credentials (az login) or AZURE_DEVOPS_PAT
"""
import os
import sys

# Make the ado_mcp package importable from a source checkout
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ado_mcp.server import mcp, configure_logging

if __name__ == "__main__":
    configure_logging()
    mcp.run()
