"""
kubediag Configuration

Centralized configuration, read from the environment. Command line options
override these values.
"""

import os

# =============================================================================
# Cluster Configuration
# =============================================================================

KUBECONFIG = os.environ.get("KUBECONFIG", "")
KUBE_CONTEXT = os.environ.get("KUBEDIAG_CONTEXT", "")

ROUTER_NAME = os.environ.get("KUBEDIAG_ROUTER_NAME", "router")
ROUTER_NAMESPACE = os.environ.get("KUBEDIAG_ROUTER_NAMESPACE", "default")
ROUTER_KIND = os.environ.get("KUBEDIAG_ROUTER_KIND", "deployment")


# =============================================================================
# Host Configuration
# =============================================================================

NODE_CONFIG_FILE = os.environ.get("KUBEDIAG_NODE_CONFIG", "")
MASTER_CONFIG_FILE = os.environ.get("KUBEDIAG_MASTER_CONFIG", "")


# =============================================================================
# Runtime Configuration
# =============================================================================

LOG_LEVEL = os.environ.get("KUBEDIAG_LOG_LEVEL", "WARNING").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

WATCH_INTERVAL = int(os.environ.get("KUBEDIAG_WATCH_INTERVAL", "300"))
HISTORY_SIZE = 100


if __name__ == "__main__":
    print("kubediag Configuration")
    print("=" * 50)
    print(f"Kubeconfig: {KUBECONFIG or '(default)'}")
    print(f"Router: {ROUTER_NAMESPACE}/{ROUTER_NAME} ({ROUTER_KIND})")
    print(f"Node config: {NODE_CONFIG_FILE or '(not set)'}")
    print(f"Master config: {MASTER_CONFIG_FILE or '(not set)'}")
    print(f"Log level: {LOG_LEVEL}")
    print(f"Watch interval: {WATCH_INTERVAL}s")
