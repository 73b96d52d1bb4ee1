"""
clusterdown - best-effort teardown of oVirt clusters.

This package discovers every VM, tag, template and affinity group that
belongs to a provisioned cluster and removes them in dependency order.
"""

__version__ = "0.1.0"
__author__ = "clusterdown authors"
