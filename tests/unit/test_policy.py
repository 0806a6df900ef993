"""Tests for the network-mode policy."""

from infra_readiness.models import ClusterMode
from infra_readiness.policy import ModePolicy


def test_flannel_steps_only_in_flannel_mode():
    policy = ModePolicy()

    assert policy.is_step_required("flannel-apply", ClusterMode.FLANNEL)
    assert policy.is_step_required("cilium-running", ClusterMode.FLANNEL)
    assert not policy.is_step_required("flannel-apply", ClusterMode.DEFAULT)
    assert not policy.is_step_required("cilium-running", ClusterMode.GKE)


def test_regular_steps_always_required():
    policy = ModePolicy()

    assert policy.is_step_required("dns-ready", ClusterMode.DEFAULT)
    assert policy.is_step_required("dns-ready", ClusterMode.FLANNEL)


def test_skip_reason_names_modes():
    reason = ModePolicy().skip_reason("flannel-apply", ClusterMode.DEFAULT)

    assert "flannel" in reason
    assert "default" in reason
    assert ModePolicy().skip_reason("flannel-apply", ClusterMode.FLANNEL) == ""


def test_custom_mode_only_steps():
    policy = ModePolicy({"gke-routes": [ClusterMode.GKE]})

    assert policy.is_step_required("gke-routes", ClusterMode.GKE)
    assert not policy.is_step_required("gke-routes", ClusterMode.DEFAULT)
    assert policy.is_step_required("flannel-apply", ClusterMode.DEFAULT)


def test_scenario_skipped_in_flannel_mode():
    """Test that flannel-incompatible scenarios skip with a reason naming the mode."""
    skip, reason = ModePolicy.should_skip_scenario(ClusterMode.FLANNEL)

    assert skip
    assert reason == 'This feature is not supported in Cilium "flannel" mode. Skipping test.'


def test_scenario_not_marked_incompatible_runs_in_flannel_mode():
    assert ModePolicy.should_skip_scenario(ClusterMode.FLANNEL, unsupported=()) == (False, "")


def test_scenario_runs_in_default_mode():
    assert ModePolicy.should_skip_scenario(ClusterMode.DEFAULT) == (False, "")
