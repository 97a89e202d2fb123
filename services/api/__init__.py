"""Tool hosts: Flask HTTP app (server.py), stdio transport (stdio.py), and the
shared tool registry (tools.py)."""
