"""
A402 Facilitator HTTP server
"""

from a402.server.app import create_app, main

__all__ = ["create_app", "main"]
