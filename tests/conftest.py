"""Pytest configuration and shared fixtures."""

import time

import pytest
from hypothesis import Verbosity, settings

from infra_readiness.config import CiliumInstallOptions, TimeoutConfig
from infra_readiness.errors import PreflightError
from infra_readiness.models import ActionResult, ResourceKind, ResourceStatus
from infra_readiness.policy import ModePolicy
from infra_readiness.poller import ReadinessPoller
from infra_readiness.sequencer import ProvisioningSequencer

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

# Load the default profile
settings.load_profile("default")

FAST_POLL_INTERVAL = 0.01


class FakeCluster:
    """Scripted Cluster that records every call with a timestamp.

    ``statuses`` maps a resource name to the sequence of observations returned
    by successive reads; the last entry repeats. Entries may be exceptions,
    which are raised instead. Unscripted resources report fully ready.
    ``read_delay`` makes every status read take that long, or fail once the
    read's timeout is shorter, like a kubectl call killed by its timeout.
    """

    def __init__(
        self,
        statuses=None,
        preflight_errors=None,
        action_errors=None,
        action_results=None,
        exec_error=None,
        terminating=None,
        read_delay=0.0,
    ):
        self.statuses = {name: list(seq) for name, seq in (statuses or {}).items()}
        self.preflight_errors = dict(preflight_errors or {})
        self.action_errors = dict(action_errors or {})
        self.action_results = dict(action_results or {})
        self.exec_error = exec_error
        self.terminating = list(terminating or [0])
        self.read_delay = read_delay
        self.calls = []
        self.install_options = None
        self.operator_tag = None

    def _record(self, kind, detail):
        self.calls.append((time.monotonic(), kind, detail))

    def _action(self, name):
        self._record("action", name)
        if name in self.action_errors:
            raise self.action_errors[name]
        return self.action_results.get(name, ActionResult.APPLIED)

    def apply_manifest(self, path):
        self._record("action", f"apply_manifest:{path}")

    def apply_dns(self):
        return self._action("apply_dns")

    def deploy_etcd_operator(self):
        return self._action("deploy_etcd_operator")

    def install_cilium(self, options):
        self.install_options = options
        return self._action("install_cilium")

    def install_cilium_operator(self, tag):
        self.operator_tag = tag
        return self._action("install_cilium_operator")

    def apply_flannel(self):
        return self._action("apply_flannel")

    def resource_status(self, ref, timeout=None):
        self._record("status", ref.name)
        if self.read_delay:
            if timeout is not None and timeout < self.read_delay:
                time.sleep(timeout)
                raise RuntimeError(f"read of {ref.name} timed out after {timeout:.2f}s")
            time.sleep(self.read_delay)
        seq = self.statuses.get(ref.name)
        if not seq:
            members = ref.min_members
            updated = None if ref.kind is ResourceKind.POD_SET else members
            return ResourceStatus(desired=members, ready=members, updated=updated)
        status = seq.pop(0) if len(seq) > 1 else seq[0]
        if isinstance(status, Exception):
            raise status
        return status

    def terminating_pods(self, timeout=None):
        self._record("terminating", "")
        count = self.terminating.pop(0) if len(self.terminating) > 1 else self.terminating[0]
        if isinstance(count, Exception):
            raise count
        return count

    def preflight_check(self, component, timeout=None):
        self._record("preflight", component)
        if component in self.preflight_errors:
            raise PreflightError(component, self.preflight_errors[component])

    def exec(self, args):
        self._record("exec", " ".join(args))
        if self.exec_error is not None:
            raise self.exec_error
        return f"output of {' '.join(args)}\n"

    # -- inspection helpers --

    def trace(self, *kinds):
        return [(kind, detail) for _, kind, detail in self.calls if not kinds or kind in kinds]

    def actions(self):
        return [detail for _, kind, detail in self.calls if kind == "action"]

    def polled(self):
        return [detail for _, kind, detail in self.calls if kind == "status"]

    def first(self, kind, detail):
        """Position of the first matching call in the recorded trace."""
        return next(i for i, (_, k, d) in enumerate(self.calls) if k == kind and d == detail)

    def last(self, kind, detail):
        """Position of the last matching call in the recorded trace."""
        return [i for i, (_, k, d) in enumerate(self.calls) if k == kind and d == detail][-1]


@pytest.fixture
def make_cluster():
    """Factory for scripted fake clusters."""
    return FakeCluster


@pytest.fixture
def fast_timeouts():
    """Timeouts short enough for failing waits to finish quickly."""
    return TimeoutConfig(helper_timeout=0.2, long_timeout=0.3, poll_interval=1, parallel_checks=True)


@pytest.fixture
def make_sequencer(fast_timeouts):
    """Factory building a sequencer over a fake cluster with a fast poller."""

    def _make(cluster, timeouts=None, install_options=None, policy=None):
        poller = ReadinessPoller(cluster, poll_interval=FAST_POLL_INTERVAL)
        return ProvisioningSequencer(
            cluster,
            poller,
            policy=policy or ModePolicy(),
            timeouts=timeouts or fast_timeouts,
            install_options=install_options or CiliumInstallOptions(),
        )

    return _make
