"""
Cluster Router Diagnostic

Checks that the router workload exists, has running pods, and that none of
those pods is currently failing to fetch routes from the master.
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Pattern, Tuple

from ..diagnostics import Diagnostic, DiagnosticError, DiagnosticResult, LineScanner, ScannerError
from ..utils.time import ensure_aware, parse_nano_timestamp, utcnow
from .client import WORKLOAD_DEPLOYMENT, WORKLOAD_KINDS, ClusterClient, ClusterClientError, PodInfo, Workload

logger = logging.getLogger(__name__)

CLUSTER_ROUTER_NAME = "ClusterRouter"

ROUTER_NAME = "router"
ROUTER_NAMESPACE = "default"

ROUTE_FAILURE_PATTERN = re.compile(r"^(\S+).*Failed to list \*api\.Route: (.*)")

# The router retries every second, so a failure older than this is presumed
# resolved. The local clock is not always trustworthy either.
RECENCY_WINDOW = timedelta(seconds=30)

CLIENT_ACCESS_ERROR = """Client error while checking access to router records. The client
retrieved records during discovery, so this is likely to be a transient
error. Try running diagnostics again. If this message persists, there may
be a permissions problem with getting router records. The error was:

({error_type}) {error}"""

ROUTER_NOT_FOUND = """
There is no "%s" %s. The router may have been named something different,
in which case this warning may be ignored.

A router is not strictly required; however it is needed for accessing
pods from external networks and its absence likely indicates an incomplete
installation of the cluster."""

ROUTER_LOOKUP_FAILED = """
Client error while retrieving the "%s" %s. The client retrieved records
before, so this is likely to be a transient error. Try running diagnostics
again. If this message persists, there may be a permissions problem with
getting records. The error was:

(%s) %s"""

ROUTER_NO_PODS = """
The "%s" %s exists but has no running pods, so it is not available.
Apps will not be externally accessible via the router."""

ROUTER_POD_LOG_FAILED = """
Failed to read the logs for the "{pod_name}" pod belonging to the router
deployment. This is not a problem by itself but prevents diagnostics from
looking for errors in those logs. The error encountered was:
{error}"""

ROUTER_POD_LOG_READ_FAILED = """
Reading the logs for the "{pod_name}" pod belonging to the router
deployment stopped after {lines} lines. Later log lines were not checked
for errors. The error encountered was:
{error}"""

ROUTER_POD_CONNECTION = """
Recent pod logs for the "{pod_name}" pod belonging to the router deployment
indicated a problem requesting route information from the master. This
prevents the router from functioning, so applications will not be
externally accessible via the router.

There are many reasons for this request to fail, including invalid
credentials, DNS failures, master outages, and so on. Examine the following
error message from the router pod logs to determine the cause of the problem:

{reason}
Time: {timestamp}"""


def _describe_error(e: BaseException) -> Tuple[str, str]:
    return type(e).__name__, str(e)


class ClusterRouter(Diagnostic):
    """
    Diagnostic that looks for a working router.

    Stages, each ending the check early on failure:
        1. resolve the router workload
        2. list its pods, keep the running ones
        3. scan each running pod's log for a recent route fetch failure

    Example:
        router = ClusterRouter(ClusterClient.from_kubeconfig())
        ok, err = router.can_run()
        if ok:
            result = router.check()
    """

    NAME = CLUSTER_ROUTER_NAME
    DESCRIPTION = "Check there is a working router"

    def __init__(
        self,
        cluster: Optional[ClusterClient],
        router_name: str = ROUTER_NAME,
        namespace: str = ROUTER_NAMESPACE,
        workload_kind: str = WORKLOAD_DEPLOYMENT,
        failure_pattern: Pattern[str] = ROUTE_FAILURE_PATTERN,
        recency_window: timedelta = RECENCY_WINDOW,
        clock: Callable[[], datetime] = utcnow,
    ):
        if workload_kind not in WORKLOAD_KINDS:
            raise ValueError(
                f"Unsupported router workload kind {workload_kind!r}, expected one of {', '.join(WORKLOAD_KINDS)}"
            )
        self.cluster = cluster
        self.router_name = router_name
        self.namespace = namespace
        self.workload_kind = workload_kind
        self.failure_pattern = failure_pattern
        self.recency_window = recency_window
        self.clock = clock

    def _required_access(self) -> List[dict]:
        if self.workload_kind == WORKLOAD_DEPLOYMENT:
            workload = {"group": "apps", "resource": "deployments"}
        else:
            workload = {"group": "apps.openshift.io", "resource": "deploymentconfigs"}
        return [
            dict(verb="get", name=self.router_name, **workload),
            dict(verb="list", resource="pods"),
            dict(verb="get", resource="pods", subresource="log"),
        ]

    def can_run(self) -> Tuple[bool, Optional[DiagnosticError]]:
        if self.cluster is None:
            return False, DiagnosticError("clNoClient", "must have a cluster client")

        for access in self._required_access():
            try:
                allowed = self.cluster.can_i(namespace=self.namespace, **access)
            except ClusterClientError as e:
                error_type, error = _describe_error(e)
                return False, DiagnosticError(
                    "clGetRouterFailed",
                    CLIENT_ACCESS_ERROR.format(error_type=error_type, error=error),
                    cause=e,
                )
            if not allowed:
                target = access["resource"]
                if access.get("subresource"):
                    target += "/" + access["subresource"]
                if access.get("name"):
                    target += " " + access["name"]
                return False, DiagnosticError(
                    "clGetRouterFailed",
                    f"Client does not have access to {access['verb']} {target} in namespace {self.namespace}",
                )
        return True, None

    def check(self) -> DiagnosticResult:
        r = self.new_result()
        if self.cluster is None:
            r.error("DClu2000", "No cluster client configured; cannot check the router")
            return r

        workload = self._get_router(r)
        if workload is None:
            return r

        pods = self._get_running_pods(workload, r)
        if not pods:
            return r

        for pod in pods:
            # Check the logs for that pod for common issues (credentials, DNS resolution failure)
            self._check_router_logs(pod, r)
        return r

    def _get_router(self, r: DiagnosticResult) -> Optional[Workload]:
        try:
            workload = self.cluster.get_workload(self.router_name, self.namespace, kind=self.workload_kind)
        except ClusterClientError as e:
            if e.not_found:
                r.warn("DClu2001", ROUTER_NOT_FOUND, self.router_name, self.workload_kind, err=e)
            else:
                r.error("DClu2002", ROUTER_LOOKUP_FAILED, self.router_name, self.workload_kind, *_describe_error(e), err=e)
            return None

        r.debug("DClu2003", "Found default router %s", self.workload_kind)
        return workload

    def _get_running_pods(self, workload: Workload, r: DiagnosticResult) -> List[PodInfo]:
        try:
            pods = self.cluster.list_pods(workload.namespace, workload.label_selector)
        except ClusterClientError as e:
            r.error(
                "DClu2004",
                "Finding pods for '%s' %s failed. This should never happen. Error: (%s) %s",
                self.router_name, self.workload_kind, *_describe_error(e),
                err=e,
            )
            return []

        running = []
        for pod in pods:
            if not pod.is_running:
                r.debug("DClu2005", "router pod with name %s is not running", pod.name)
            else:
                running.append(pod)
                r.debug("DClu2006", "Found running router pod with name %s", pod.name)

        if not running:
            r.error("DClu2007", ROUTER_NO_PODS, self.router_name, self.workload_kind)
        return running

    def _open_log_scanner(self, pod: PodInfo) -> LineScanner:
        stream = self.cluster.stream_pod_log(
            pod.name,
            pod.namespace,
            container=pod.first_container,
            follow=False,
        )
        return LineScanner(stream)

    def _check_router_logs(self, pod: PodInfo, r: DiagnosticResult) -> None:
        try:
            scanner = self._open_log_scanner(pod)
        except ClusterClientError as e:
            error_type, error = _describe_error(e)
            r.warn("DClu2008", ROUTER_POD_LOG_FAILED, err=e, pod_name=pod.name, error=f"({error_type}) {error}")
            return

        with scanner:
            try:
                for line in scanner:
                    match = self.failure_pattern.search(line)
                    if not match:
                        continue

                    stamp = self._recent_stamp(match.group(1))
                    if stamp is None:
                        continue

                    r.error(
                        "DClu2009",
                        ROUTER_POD_CONNECTION,
                        reason=match.group(2),
                        timestamp=match.group(1),
                        pod_name=pod.name,
                    )
                    break
            except ScannerError as e:
                error_type, error = _describe_error(e)
                r.warn(
                    "DClu2010",
                    ROUTER_POD_LOG_READ_FAILED,
                    err=e,
                    pod_name=pod.name,
                    lines=scanner.lines_read,
                    error=f"({error_type}) {error}",
                )

    def _recent_stamp(self, value: str) -> Optional[datetime]:
        """Return the parsed timestamp if it falls inside the recency window."""
        try:
            stamp = parse_nano_timestamp(value)
        except ValueError:
            logger.debug(f"Ignoring route failure with unparseable timestamp {value!r}")
            return None

        if ensure_aware(self.clock()) - stamp < self.recency_window:
            return stamp
        logger.debug(f"Ignoring stale route failure at {value}")
        return None
