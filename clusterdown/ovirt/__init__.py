"""
oVirt engine adapter.
"""

from .base import ClusterAPI
from .client import OvirtClient
from .credentials import OvirtCredentials, load_credentials

__all__ = [
    "ClusterAPI",
    "OvirtClient",
    "OvirtCredentials",
    "load_credentials",
]
