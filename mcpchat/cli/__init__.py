"""MCPChat command-line interface."""
