"""Allow ``python -m dynalist_mcp``."""

from .server import main

main()
