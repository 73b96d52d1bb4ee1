"""
REST API for clusterdown.
"""

from .app import app

__all__ = ["app"]
