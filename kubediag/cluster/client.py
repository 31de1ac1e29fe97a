"""
kubediag - Cluster Client

Thin wrapper over the official kubernetes client exposing only the reads
the diagnostics need. Every API failure is raised as a ClusterClientError
carrying an explicit ErrorKind, so callers never inspect exception types.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException

logger = logging.getLogger(__name__)

LOG_STREAM_REQUEST_TIMEOUT = 30  # seconds, total for the open and every read of the body

WORKLOAD_DEPLOYMENT = "deployment"
WORKLOAD_DEPLOYMENT_CONFIG = "deploymentconfig"
WORKLOAD_KINDS = (WORKLOAD_DEPLOYMENT, WORKLOAD_DEPLOYMENT_CONFIG)

POD_RUNNING = "Running"


class ErrorKind(Enum):
    """Classification of cluster API failures."""
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    TRANSIENT = "transient"
    OTHER = "other"


_TRANSIENT_STATUSES = {408, 429, 500, 502, 503, 504}


class ClusterClientError(Exception):
    """
    A failed cluster API call.

    Attributes:
        kind: ErrorKind classification
        reason: Short reason reported by the API server
        status: HTTP status code, when there was a response
        cause: Original exception
    """

    def __init__(
        self,
        kind: ErrorKind,
        reason: str,
        status: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(reason)
        self.kind = kind
        self.reason = reason
        self.status = status
        self.cause = cause

    @property
    def not_found(self) -> bool:
        return self.kind == ErrorKind.NOT_FOUND

    def __str__(self) -> str:
        if self.status:
            return f"{self.reason} (status {self.status})"
        return self.reason

    @classmethod
    def from_exception(cls, e: BaseException, action: str) -> "ClusterClientError":
        if isinstance(e, ApiException):
            status = e.status
            if status == 404:
                kind = ErrorKind.NOT_FOUND
            elif status in (401, 403):
                kind = ErrorKind.FORBIDDEN
            elif status in _TRANSIENT_STATUSES:
                kind = ErrorKind.TRANSIENT
            else:
                kind = ErrorKind.OTHER
            return cls(kind, f"{action}: {e.reason}", status=status, cause=e)

        if isinstance(e, (urllib3.exceptions.HTTPError, ConnectionError, TimeoutError)):
            return cls(ErrorKind.TRANSIENT, f"{action}: {e}", cause=e)

        return cls(ErrorKind.OTHER, f"{action}: {e}", cause=e)


@dataclass
class Workload:
    """A workload resource and the pod selector it owns."""
    name: str
    namespace: str
    kind: str = WORKLOAD_DEPLOYMENT
    selector: Dict[str, str] = field(default_factory=dict)
    selector_expressions: List[str] = field(default_factory=list)

    @property
    def label_selector(self) -> str:
        """Selector in ``key=value,key in (a,b)`` form."""
        terms = [f"{k}={v}" for k, v in sorted(self.selector.items())]
        return ",".join(terms + self.selector_expressions)


@dataclass
class PodInfo:
    """The parts of a pod the diagnostics look at."""
    name: str
    namespace: str
    phase: str = "Unknown"
    containers: List[str] = field(default_factory=list)

    @property
    def is_running(self) -> bool:
        return self.phase == POD_RUNNING

    @property
    def first_container(self) -> Optional[str]:
        return self.containers[0] if self.containers else None


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except ClusterClientError:
        raise
    except Exception as e:
        error = ClusterClientError.from_exception(e, action)
        logger.debug(f"{action} failed: {error} ({error.kind.value})")
        raise error from e


def _expression_to_selector(expr: Any) -> str:
    """Convert a V1LabelSelectorRequirement to selector syntax."""
    operator = expr.operator
    values = ",".join(expr.values or [])
    if operator == "In":
        return f"{expr.key} in ({values})"
    if operator == "NotIn":
        return f"{expr.key} notin ({values})"
    if operator == "Exists":
        return expr.key
    if operator == "DoesNotExist":
        return f"!{expr.key}"
    raise ValueError(f"Unsupported selector operator: {operator}")


class ClusterClient:
    """
    Read-only cluster operations used by the diagnostics.

    Example:
        cluster = ClusterClient.from_kubeconfig()
        workload = cluster.get_workload("router", "default")
        pods = cluster.list_pods("default", workload.label_selector)
    """

    def __init__(
        self,
        core_v1: Optional[client.CoreV1Api] = None,
        apps_v1: Optional[client.AppsV1Api] = None,
        authz_v1: Optional[client.AuthorizationV1Api] = None,
        custom_objects: Optional[client.CustomObjectsApi] = None,
    ):
        self.core_v1 = core_v1 or client.CoreV1Api()
        self.apps_v1 = apps_v1 or client.AppsV1Api()
        self.authz_v1 = authz_v1 or client.AuthorizationV1Api()
        self.custom_objects = custom_objects or client.CustomObjectsApi()

    @classmethod
    def from_kubeconfig(cls, kubeconfig_path: Optional[str] = None, context: Optional[str] = None) -> "ClusterClient":
        """Load credentials and build a client."""
        try:
            if kubeconfig_path:
                config.load_kube_config(config_file=kubeconfig_path, context=context)
            else:
                # Try in-cluster config first, fall back to kubeconfig
                try:
                    config.load_incluster_config()
                except config.ConfigException:
                    config.load_kube_config(context=context)
        except Exception as e:
            raise ClusterClientError(
                ErrorKind.OTHER, f"Failed to load Kubernetes config: {e}", cause=e
            ) from e

        return cls()

    def get_workload(self, name: str, namespace: str, kind: str = WORKLOAD_DEPLOYMENT) -> Workload:
        """
        Get a workload resource by name.

        Args:
            name: Resource name
            namespace: Namespace
            kind: ``deployment`` or ``deploymentconfig`` (OpenShift)

        Raises:
            ClusterClientError
        """
        if kind == WORKLOAD_DEPLOYMENT_CONFIG:
            return self._get_deployment_config(name, namespace)
        if kind != WORKLOAD_DEPLOYMENT:
            raise ClusterClientError(ErrorKind.OTHER, f"Unsupported workload kind: {kind}")

        with _translate_errors(f"get deployment {namespace}/{name}"):
            deployment = self.apps_v1.read_namespaced_deployment(name=name, namespace=namespace)

            selector = deployment.spec.selector
            expressions = [
                _expression_to_selector(e) for e in (selector.match_expressions or [])
            ] if selector else []

        return Workload(
            name=deployment.metadata.name,
            namespace=deployment.metadata.namespace or namespace,
            kind=WORKLOAD_DEPLOYMENT,
            selector=dict(selector.match_labels or {}) if selector else {},
            selector_expressions=expressions,
        )

    def _get_deployment_config(self, name: str, namespace: str) -> Workload:
        with _translate_errors(f"get deploymentconfig {namespace}/{name}"):
            dc = self.custom_objects.get_namespaced_custom_object(
                group="apps.openshift.io",
                version="v1",
                namespace=namespace,
                plural="deploymentconfigs",
                name=name,
            )

            return Workload(
                name=dc.get("metadata", {}).get("name", name),
                namespace=dc.get("metadata", {}).get("namespace", namespace),
                kind=WORKLOAD_DEPLOYMENT_CONFIG,
                selector=dict(dc.get("spec", {}).get("selector") or {}),
            )

    def list_pods(self, namespace: str, label_selector: str = "") -> List[PodInfo]:
        """
        List pods in a namespace matching a label selector.

        Raises:
            ClusterClientError
        """
        with _translate_errors(f"list pods in {namespace} ({label_selector or 'all'})"):
            pods = self.core_v1.list_namespaced_pod(
                namespace=namespace,
                label_selector=label_selector or None,
            )

        result = []
        for pod in pods.items:
            containers = [c.name for c in (pod.spec.containers or [])] if pod.spec else []
            result.append(PodInfo(
                name=pod.metadata.name,
                namespace=pod.metadata.namespace or namespace,
                phase=(pod.status.phase if pod.status else None) or "Unknown",
                containers=containers,
            ))
        return result

    def stream_pod_log(
        self,
        pod_name: str,
        namespace: str,
        container: Optional[str] = None,
        follow: bool = False,
        timestamps: bool = False,
    ) -> urllib3.response.HTTPResponse:
        """
        Open a pod's log as an unread byte stream.

        The caller owns the returned response and must close it.

        Raises:
            ClusterClientError
        """
        with _translate_errors(f"open log stream for pod {namespace}/{pod_name}"):
            return self.core_v1.read_namespaced_pod_log(
                name=pod_name,
                namespace=namespace,
                container=container,
                follow=follow,
                timestamps=timestamps,
                _preload_content=False,
                _request_timeout=LOG_STREAM_REQUEST_TIMEOUT,
            )

    def can_i(
        self,
        namespace: str,
        verb: str,
        resource: str,
        name: Optional[str] = None,
        group: Optional[str] = None,
        subresource: Optional[str] = None,
    ) -> bool:
        """
        Ask the API server whether the current identity may perform an action.

        Raises:
            ClusterClientError: if the review itself fails
        """
        review = client.V1SelfSubjectAccessReview(
            spec=client.V1SelfSubjectAccessReviewSpec(
                resource_attributes=client.V1ResourceAttributes(
                    namespace=namespace,
                    verb=verb,
                    resource=resource,
                    name=name,
                    group=group,
                    subresource=subresource,
                ),
            ),
        )

        with _translate_errors(f"access review {verb} {resource}"):
            response = self.authz_v1.create_self_subject_access_review(body=review)

        allowed = bool(response.status and response.status.allowed)
        if not allowed:
            reason = response.status.reason if response.status else None
            logger.info(f"Access denied: {verb} {resource}/{name or '*'} in {namespace}: {reason or 'no reason given'}")
        return allowed
