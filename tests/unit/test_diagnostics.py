"""Tests for the diagnostic collector."""

from infra_readiness.diagnostics import DiagnosticCollector
from infra_readiness.models import ResourceKind, ResourceRef

CILIUM = ResourceRef(ResourceKind.DAEMON_SET, "kube-system", "cilium")
ETCD = ResourceRef(ResourceKind.POD_SET, "kube-system", "etcd", selector="io.cilium/app=etcd-operator", min_members=5)


def test_collects_object_and_pods(make_cluster):
    cluster = make_cluster()
    text = DiagnosticCollector(cluster).collect(CILIUM)

    assert "$ kubectl -n kube-system get daemonset cilium -o wide" in text
    assert "$ kubectl -n kube-system get pods -l k8s-app=cilium -o wide" in text
    assert "output of -n kube-system get pods -l k8s-app=cilium -o wide" in text


def test_pod_set_only_lists_pods(make_cluster):
    cluster = make_cluster()
    DiagnosticCollector(cluster).collect(ETCD)

    assert cluster.trace("exec") == [("exec", "-n kube-system get pods -l io.cilium/app=etcd-operator -o wide")]


def test_collection_failure_never_raises(make_cluster):
    """Test that a failing query degrades to a marker line instead of raising."""
    cluster = make_cluster(exec_error=RuntimeError("forbidden"))

    text = DiagnosticCollector(cluster).collect(CILIUM)

    assert text.count("<query failed: forbidden>") == 2


def test_collection_tolerates_unexpected_errors(make_cluster):
    cluster = make_cluster(exec_error=KeyError("boom"))

    text = DiagnosticCollector(cluster).collect(CILIUM)

    assert "<query failed:" in text


def test_output_is_truncated(make_cluster):
    text = DiagnosticCollector(make_cluster(), max_chars=40).collect(CILIUM)

    assert "more characters)" in text
