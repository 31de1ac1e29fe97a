"""
Tests for the kubediag CLI
"""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from kubediag.cli import build_diagnostics, cli
from kubediag.cluster import ClusterClientError, ClusterRouter, ErrorKind
from kubediag.host import MasterConfigCheck, NodeConfigCheck

# Keep log records out of the captured command output
QUIET = ["--log-level", "CRITICAL"]


@pytest.fixture
def no_cluster():
    """Make cluster credentials unavailable."""
    error = ClusterClientError(ErrorKind.OTHER, "Failed to load Kubernetes config: no kubeconfig")
    with patch("kubediag.cli.ClusterClient.from_kubeconfig", side_effect=error) as load:
        yield load


@pytest.fixture
def runner():
    return CliRunner()


class TestBuildDiagnostics:
    """Tests for build_diagnostics()."""

    def test_builds_all(self, no_cluster):
        diagnostics = build_diagnostics(node_config="/etc/node.yaml")

        assert [type(d) for d in diagnostics] == [NodeConfigCheck, MasterConfigCheck, ClusterRouter]
        assert diagnostics[0].config_file == "/etc/node.yaml"
        assert diagnostics[2].cluster is None

    def test_only(self, no_cluster):
        diagnostics = build_diagnostics(only=["clusterrouter"])

        assert [d.name for d in diagnostics] == ["ClusterRouter"]

    def test_router_options(self, no_cluster):
        router = build_diagnostics(router_name="ingress", router_namespace="infra", router_kind="deploymentconfig")[2]

        assert router.router_name == "ingress"
        assert router.namespace == "infra"
        assert router.workload_kind == "deploymentconfig"


class TestCli:
    """Tests for the click commands."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_list(self, runner, no_cluster):
        result = runner.invoke(cli, QUIET + ["list"])

        assert result.exit_code == 0
        assert "NodeConfigCheck" in result.output
        assert "ClusterRouter" in result.output

    def test_run_json_all_skipped(self, runner, no_cluster):
        result = runner.invoke(cli, QUIET + ["run", "--output", "json", "--node-config", "", "--master-config", ""])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["summary"]["skipped"] == 3

    def test_run_failing_node_config(self, runner, no_cluster, tmp_path):
        path = tmp_path / "node-config.yaml"
        path.write_text("nodeName: node-1\n")

        result = runner.invoke(cli, QUIET + ["run", "-o", "json", "--node-config", str(path), "-d", "NodeConfigCheck"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        codes = [f["code"] for f in data["diagnostics"][0]["result"]["findings"]]
        assert "DH1004" in codes
        assert "DH1001" not in codes  # debug filtered at default info level

    def test_run_text(self, runner, no_cluster, tmp_path):
        path = tmp_path / "node-config.yaml"
        path.write_text("nodeName: node-1\n")

        result = runner.invoke(cli, QUIET + ["run", "--node-config", str(path), "-d", "NodeConfigCheck", "--level", "error"])

        assert result.exit_code == 1
        assert "NodeConfigCheck" in result.output
        assert "DH1004" in result.output

    def test_run_no_match(self, runner, no_cluster):
        result = runner.invoke(cli, QUIET + ["run", "-d", "NoSuchCheck"])

        assert result.exit_code == 2
