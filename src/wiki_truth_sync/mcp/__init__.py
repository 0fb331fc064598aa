"""MCP stdio server exposing the truth sync engine as tools."""
