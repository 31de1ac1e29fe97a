"""
Host Config Files

Reads node and master config files (YAML) and validates their structure.
Relative file references are resolved against the config file's directory.
"""

import ipaddress
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set
from urllib.parse import urlparse

import yaml

logger = logging.getLogger(__name__)

# Keys whose string values are file paths
PATH_FIELDS = {
    "certFile",
    "keyFile",
    "clientCA",
    "ca",
    "masterKubeConfig",
    "kubeConfig",
    "openshiftLoopbackKubeConfig",
    "externalKubernetesKubeConfig",
    "volumeDirectory",
}


class ConfigFileError(Exception):
    """The config file could not be read or parsed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ValidationError(Exception):
    """One structural problem in a config."""

    def __init__(self, field: str, detail: str):
        super().__init__(f"{field}: {detail}")
        self.field = field
        self.detail = detail


def read_and_resolve(path: str) -> Dict[str, Any]:
    """
    Load a YAML config file and resolve its relative file references.

    Args:
        path: Config file path

    Returns:
        Parsed config mapping

    Raises:
        ConfigFileError
    """
    config_path = Path(path)
    try:
        # PyYAML detects the encoding of a byte stream and reports bad bytes as a ReaderError
        with open(config_path, "rb") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigFileError(path, e.strerror or str(e)) from e
    except yaml.YAMLError as e:
        raise ConfigFileError(path, f"invalid YAML: {e}") from e
    except ValueError as e:
        raise ConfigFileError(path, f"unreadable config: {e}") from e

    if not isinstance(data, dict):
        raise ConfigFileError(path, "config must be a YAML mapping")

    base_dir = config_path.resolve().parent
    try:
        return _resolve_paths(data, base_dir, None, set())
    except _CyclicConfig as e:
        raise ConfigFileError(path, f"config contains a recursive reference under {e.key or 'the top level'}") from e


class _CyclicConfig(Exception):
    def __init__(self, key: Optional[str]):
        super().__init__(key)
        self.key = key


def _resolve_paths(value: Any, base_dir: Path, key: Optional[str], active: Set[int]) -> Any:
    # active holds the ids of the containers on the current path
    if isinstance(value, (dict, list)):
        if id(value) in active:
            raise _CyclicConfig(key)
        active.add(id(value))
        try:
            if isinstance(value, dict):
                return {k: _resolve_paths(v, base_dir, k, active) for k, v in value.items()}
            return [_resolve_paths(v, base_dir, key, active) for v in value]
        finally:
            active.discard(id(value))
    if key in PATH_FIELDS and isinstance(value, str) and value and not os.path.isabs(value):
        return str(base_dir / value)
    return value


def _get(config: Dict[str, Any], dotted: str) -> Any:
    node: Any = config
    for part in dotted.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


class _Validator:
    """Collects validation errors for one config."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.errors: List[ValidationError] = []

    def add(self, field: str, detail: str) -> None:
        self.errors.append(ValidationError(field, detail))

    def required(self, field: str, kind: type = str) -> Any:
        value = _get(self.config, field)
        if value is None or value == "":
            self.add(field, "required")
            return None
        if not isinstance(value, kind):
            self.add(field, f"must be a {kind.__name__}")
            return None
        return value

    def optional(self, field: str, kind: type = str) -> Any:
        value = _get(self.config, field)
        if value is None:
            return None
        if not isinstance(value, kind) or isinstance(value, bool) and kind is not bool:
            self.add(field, f"must be a {kind.__name__}")
            return None
        return value

    def bind_address(self, field: str) -> None:
        value = self.required(field)
        if value is None:
            return
        host, sep, port = value.rpartition(":")
        if not sep or not port.isdigit() or not 0 < int(port) < 65536:
            self.add(field, f"invalid bind address {value!r}, expected host:port")
            return
        if host not in ("", "0.0.0.0") and not _is_hostname_or_ip(host):
            self.add(field, f"invalid host {host!r} in bind address")

    def existing_file(self, field: str, required: bool = False) -> None:
        value = self.required(field) if required else self.optional(field)
        if value and not os.path.exists(value):
            self.add(field, f"file {value!r} does not exist")

    def ip(self, field: str) -> None:
        value = self.optional(field)
        if value is None:
            return
        try:
            ipaddress.ip_address(value)
        except ValueError:
            self.add(field, f"invalid IP address {value!r}")

    def url(self, field: str) -> None:
        value = self.required(field)
        if value is None:
            return
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            self.add(field, f"invalid URL {value!r}")

    def serving_info(self, prefix: str) -> None:
        self.bind_address(f"{prefix}.bindAddress")
        cert = _get(self.config, f"{prefix}.certFile")
        key = _get(self.config, f"{prefix}.keyFile")
        if bool(cert) != bool(key):
            self.add(prefix, "certFile and keyFile must be specified together")
        self.existing_file(f"{prefix}.certFile")
        self.existing_file(f"{prefix}.keyFile")
        self.existing_file(f"{prefix}.clientCA")


def _is_hostname_or_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host.strip("[]"))
        return True
    except ValueError:
        pass
    labels = host.rstrip(".").split(".")
    return all(label and len(label) <= 63 and label.replace("-", "").isalnum() for label in labels)


def validate_node_config(config: Dict[str, Any]) -> List[ValidationError]:
    """
    Validate a node config.

    Returns:
        List of ValidationError (empty when valid)
    """
    v = _Validator(config)
    v.required("nodeName")
    v.existing_file("masterKubeConfig", required=True)
    v.serving_info("servingInfo")
    v.ip("dnsIP")
    v.optional("dnsDomain")
    v.optional("volumeDirectory")

    mtu = v.optional("networkConfig.mtu", int)
    if mtu is not None and mtu <= 0:
        v.add("networkConfig.mtu", "must be positive")

    return v.errors


def validate_master_config(config: Dict[str, Any]) -> List[ValidationError]:
    """
    Validate a master config.

    Returns:
        List of ValidationError (empty when valid)
    """
    v = _Validator(config)
    v.serving_info("servingInfo")
    v.url("masterPublicURL")

    urls = _get(config, "etcdClientInfo.urls")
    if not isinstance(urls, list) or not urls:
        v.add("etcdClientInfo.urls", "at least one etcd URL is required")
    v.existing_file("etcdClientInfo.ca")

    port = v.optional("kubeletClientInfo.port", int)
    if port is not None and not 0 < port < 65536:
        v.add("kubeletClientInfo.port", f"invalid port {port}")

    v.existing_file("masterClients.openshiftLoopbackKubeConfig", required=True)
    v.existing_file("masterClients.externalKubernetesKubeConfig")

    return v.errors


ConfigReader = Callable[[str], Dict[str, Any]]
ConfigValidator = Callable[[Dict[str, Any]], List[ValidationError]]
