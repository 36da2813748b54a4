"""MCP server exposing workspace operations over stdio."""
