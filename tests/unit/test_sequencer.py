"""Tests for the provisioning sequencer against a recording fake cluster."""

import time

import pytest

from infra_readiness.config import CiliumInstallOptions, TimeoutConfig
from infra_readiness.errors import ApplyFailure, ProvisionError, ReadinessTimeout
from infra_readiness.models import ActionResult, ClusterMode, ResourceKind, ResourceRef, ResourceStatus, StepStatus
from infra_readiness.plan import ProvisioningPlan, ReadinessCheck, Step, default_plan

DEFAULT_ACTIONS = [
    "apply_dns",
    "deploy_etcd_operator",
    "install_cilium",
    "install_cilium_operator",
]


def test_default_mode_runs_full_plan(make_cluster, make_sequencer):
    cluster = make_cluster()
    report = make_sequencer(cluster).provision(ClusterMode.DEFAULT)

    assert report.succeeded
    assert cluster.actions() == DEFAULT_ACTIONS
    assert report.steps_with_status(StepStatus.SKIPPED) == ["cilium-running", "flannel-apply"]
    assert report.steps_with_status(StepStatus.PASSED) == [
        "dns-apply",
        "etcd-operator-deploy",
        "cilium-install",
        "cilium-operator-install",
        "etcd-operator-ready",
        "dns-ready",
        "cilium-ready",
        "cilium-operator-ready",
        "dns-reconfirm",
    ]


def test_default_mode_poll_order(make_cluster, make_sequencer):
    cluster = make_cluster()
    make_sequencer(cluster).provision(ClusterMode.DEFAULT)

    assert cluster.polled() == [
        "cilium-etcd-operator",
        "cilium-etcd-operator",
        "coredns",
        "cilium",
        "cilium-operator",
        "coredns",
    ]
    assert [c for _, c in cluster.trace("preflight")] == ["dns", "cilium", "dns"]


def test_flannel_mode_adds_flannel_step_in_order(make_cluster, make_sequencer):
    """Test that flannel mode waits for cilium, applies flannel, then keeps the relative order."""
    cluster = make_cluster()
    report = make_sequencer(cluster).provision(ClusterMode.FLANNEL)

    assert report.succeeded
    assert cluster.actions() == DEFAULT_ACTIONS + ["apply_flannel"]
    assert cluster.polled() == [
        "cilium-etcd-operator",
        "cilium",
        "cilium-etcd-operator",
        "coredns",
        "cilium",
        "cilium-operator",
        "coredns",
    ]
    assert cluster.first("status", "cilium") < cluster.first("action", "apply_flannel")
    assert report.steps_with_status(StepStatus.SKIPPED) == []


def test_flannel_step_absent_in_default_mode(make_cluster, make_sequencer):
    cluster = make_cluster()
    make_sequencer(cluster).provision(ClusterMode.DEFAULT)

    assert "apply_flannel" not in cluster.actions()


def test_step_checks_pass_before_next_action(make_cluster, make_sequencer):
    """Test that no action of step N+1 is issued before step N's checks report ready."""
    cluster = make_cluster(statuses={"cilium-etcd-operator": [
        ResourceStatus(desired=1, ready=1),
        ResourceStatus(desired=3, ready=3),
        ResourceStatus(desired=5, ready=5),
    ]})
    make_sequencer(cluster).provision(ClusterMode.DEFAULT)

    trace = cluster.trace("status", "action")
    install_at = trace.index(("action", "install_cilium"))
    assert trace[:install_at].count(("status", "cilium-etcd-operator")) == 3
    assert trace.index(("action", "deploy_etcd_operator")) < trace.index(("status", "cilium-etcd-operator"))


def test_partial_etcd_membership_aborts_before_cilium(make_cluster, make_sequencer):
    cluster = make_cluster(statuses={"cilium-etcd-operator": [ResourceStatus(desired=3, ready=3)]})

    with pytest.raises(ProvisionError) as excinfo:
        make_sequencer(cluster).provision(ClusterMode.DEFAULT)

    err = excinfo.value
    assert err.step == "etcd-operator-deploy"
    assert isinstance(err.cause, ReadinessTimeout)
    assert err.resource.name == "cilium-etcd-operator"
    assert "last status: 3/3 ready" in err.diagnostic
    assert "install_cilium" not in cluster.actions()
    assert err.report.outcome("etcd-operator-deploy").status is StepStatus.FAILED


def test_operator_not_applicable_is_never_polled(make_cluster, make_sequencer):
    """Test that a not-applicable operator install skips its readiness step entirely."""
    cluster = make_cluster(action_results={"install_cilium_operator": ActionResult.NOT_APPLICABLE})

    report = make_sequencer(cluster).provision(ClusterMode.DEFAULT)

    assert report.succeeded
    assert "cilium-operator" not in cluster.polled()
    outcome = report.outcome("cilium-operator-ready")
    assert outcome.status is StepStatus.SKIPPED
    assert "cilium-operator-install" in outcome.reason


def test_dns_preflight_failure_fails_dns_step(make_cluster, make_sequencer):
    """Test that DNS pods being ready is not enough when the preflight check fails."""
    cluster = make_cluster(preflight_errors={"dns": "no endpoints"})

    with pytest.raises(ProvisionError) as excinfo:
        make_sequencer(cluster).provision(ClusterMode.DEFAULT)

    err = excinfo.value
    assert err.step == "dns-ready"
    assert err.resource.name == "coredns"
    assert "no endpoints" in str(err)
    assert "cilium" not in [c for _, c in cluster.trace("preflight")]


def test_apply_failure_short_circuits(make_cluster, make_sequencer):
    cluster = make_cluster(action_errors={"install_cilium": RuntimeError("patch rejected")})

    with pytest.raises(ProvisionError) as excinfo:
        make_sequencer(cluster).provision(ClusterMode.DEFAULT)

    err = excinfo.value
    assert err.step == "cilium-install"
    assert isinstance(err.cause, ApplyFailure)
    assert "patch rejected" in str(err)
    assert cluster.actions() == ["apply_dns", "deploy_etcd_operator", "install_cilium"]
    assert cluster.polled() == ["cilium-etcd-operator"]


def test_dns_apply_is_fire_and_forget(make_cluster, make_sequencer):
    cluster = make_cluster(action_errors={"apply_dns": RuntimeError("already exists")})

    report = make_sequencer(cluster).provision(ClusterMode.DEFAULT)

    assert report.succeeded
    assert report.outcome("dns-apply").status is StepStatus.PASSED


def test_install_options_reach_cluster(make_cluster, make_sequencer):
    cluster = make_cluster()
    options = CiliumInstallOptions(overrides={"debug": "true"}, operator_tag="v1.5")

    make_sequencer(cluster, install_options=options).provision(ClusterMode.DEFAULT)

    assert cluster.install_options.overrides == {"debug": "true"}
    assert cluster.install_options.ds_patch == "cilium-ds-patch.yaml"
    assert cluster.operator_tag == "v1.5"


def test_long_timeout_used_for_operators(make_cluster, make_sequencer):
    cluster = make_cluster(statuses={"cilium-etcd-operator": [ResourceStatus(desired=1, ready=1)]})
    timeouts = TimeoutConfig(helper_timeout=0.05, long_timeout=0.25, poll_interval=1)

    with pytest.raises(ProvisionError) as excinfo:
        make_sequencer(cluster, timeouts=timeouts).provision(ClusterMode.DEFAULT)

    assert excinfo.value.cause.elapsed >= 0.25


def _pod(name):
    return ResourceRef(ResourceKind.DEPLOYMENT, "test", name)


@pytest.mark.parametrize("parallel", [True, False])
def test_custom_plan_with_independent_checks(make_cluster, make_sequencer, parallel):
    """Test that a fed plan runs in order and a multi-check step waits for every check."""
    plan = ProvisioningPlan([
        Step("first", "first", action="apply_dns", checks=(ReadinessCheck(_pod("a")), ReadinessCheck(_pod("b")))),
        Step("second", "second", action="apply_flannel", after=("first",)),
    ])
    cluster = make_cluster(statuses={"b": [
        ResourceStatus(desired=1, ready=0, updated=1),
        ResourceStatus(desired=1, ready=1, updated=1),
    ]})
    timeouts = TimeoutConfig(helper_timeout=5, long_timeout=5, poll_interval=1, parallel_checks=parallel)

    report = make_sequencer(cluster, timeouts=timeouts).provision(ClusterMode.DEFAULT, plan)

    assert report.succeeded
    assert cluster.actions() == ["apply_dns", "apply_flannel"]
    assert max(cluster.last("status", "a"), cluster.last("status", "b")) < cluster.first("action", "apply_flannel")
    assert report.outcome("first").resource == "Deployment test/a, Deployment test/b"


def test_custom_plan_failure_names_failing_check(make_cluster, make_sequencer):
    plan = ProvisioningPlan([
        Step("only", "only", checks=(ReadinessCheck(_pod("a")), ReadinessCheck(_pod("b")))),
    ])
    cluster = make_cluster(statuses={"b": [ResourceStatus(found=False)]})

    with pytest.raises(ProvisionError) as excinfo:
        make_sequencer(cluster).provision(ClusterMode.DEFAULT, plan)

    assert excinfo.value.resource == _pod("b")
    assert "not found" in excinfo.value.diagnostic


def test_failing_check_cancels_slower_siblings(make_cluster, make_sequencer):
    """Test that a step aborts when its first check times out, not when the slowest one does."""
    plan = ProvisioningPlan([
        Step("only", "only", checks=(
            ReadinessCheck(_pod("a")),
            ReadinessCheck(_pod("b"), timeout="long"),
        )),
    ])
    cluster = make_cluster(statuses={
        "a": [ResourceStatus(found=False)],
        "b": [ResourceStatus(found=False)],
    })
    timeouts = TimeoutConfig(helper_timeout=0.1, long_timeout=5, poll_interval=1, parallel_checks=True)

    started = time.monotonic()
    with pytest.raises(ProvisionError) as excinfo:
        make_sequencer(cluster, timeouts=timeouts).provision(ClusterMode.DEFAULT, plan)
    elapsed = time.monotonic() - started

    assert elapsed < 1.0
    assert excinfo.value.resource == _pod("a")
    assert excinfo.value.report.outcome("only").resource == "Deployment test/a"


def test_default_plan_used_when_omitted(make_cluster, make_sequencer):
    cluster = make_cluster()
    report = make_sequencer(cluster).provision(ClusterMode.DEFAULT)

    assert [o.step for o in report.outcomes] == default_plan().ids()
