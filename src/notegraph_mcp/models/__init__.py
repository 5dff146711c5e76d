"""Domain and persistence models for the Notegraph MCP server."""
