"""Dynalist MCP server: read and write Dynalist outlines as indented text."""

__version__ = "0.1.0"
