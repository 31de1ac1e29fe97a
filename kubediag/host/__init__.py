"""
Host Diagnostics

Diagnostics that inspect files on the local host.
"""

from .config_file import ConfigFileError, ValidationError, read_and_resolve
from .master_config import MasterConfigCheck
from .node_config import NodeConfigCheck

__all__ = [
    "ConfigFileError",
    "ValidationError",
    "read_and_resolve",
    "MasterConfigCheck",
    "NodeConfigCheck",
]
