"""MCP tool handlers, one module per tool group.

Importing a module registers its tools with the shared registry.
"""
