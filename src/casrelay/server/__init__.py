"""
RPC server exposing the login operation over HTTP.
"""

__all__ = ["create_app", "run_server", "status_for"]

from .app import create_app, run_server, status_for
