"""NixOps-MCP - Model Context Protocol tools for Nix, Clan, pueue, pexpect and pre-commit."""

__version__ = "0.1.0"
