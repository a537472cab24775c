"""MCP server exposing stitch operations as tools for agents."""
