"""
Cluster Diagnostics

Diagnostics that read live cluster state through the kubernetes API.
"""

from .client import ClusterClient, ClusterClientError, ErrorKind, PodInfo, Workload
from .router import ClusterRouter

__all__ = [
    "ClusterClient",
    "ClusterClientError",
    "ErrorKind",
    "PodInfo",
    "Workload",
    "ClusterRouter",
]
