#!/usr/bin/env python3
"""
Keno Catalog Proxy - Main entry point
"""
from catalog_server import create_catalog_server

# Create server instance for the fastmcp command
mcp = create_catalog_server()


def main():
    """Run the catalog proxy with the configured transport."""
    server = create_catalog_server()

    # KENO_TRANSPORT / KENO_HOST / KENO_PORT
    transport = server.config.transport.lower()
    host = server.config.host
    port = server.config.port

    if transport == "stdio":
        # stdio transport: MCP tools only, no HTTP route
        server.run()
    elif transport == "sse":
        server.run(transport="sse", host=host, port=port)
    elif transport == "http" or transport == "streamable-http":
        # HTTP transport also serves /api/products
        server.run(transport="streamable-http", host=host, port=port)
    else:
        raise ValueError(f"Unknown transport type: {transport}. Supported: stdio, sse, streamable-http")


if __name__ == "__main__":
    main()
