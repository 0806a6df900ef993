# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */


"""Resource references, readiness results, cluster modes and run reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ResourceKind(str, Enum):
    """Workload kinds the poller knows how to judge."""

    DAEMON_SET = "DaemonSet"
    DEPLOYMENT = "Deployment"
    POD_SET = "PodSet"

    @classmethod
    def parse(cls, value: str) -> ResourceKind:
        """Parse a kind from its name or a kubectl-style alias (``ds``, ``deploy``, ``pods``)."""
        aliases = {
            "ds": cls.DAEMON_SET,
            "daemonset": cls.DAEMON_SET,
            "deploy": cls.DEPLOYMENT,
            "deployment": cls.DEPLOYMENT,
            "pods": cls.POD_SET,
            "podset": cls.POD_SET,
        }
        try:
            return aliases[value.lower()]
        except KeyError:
            raise ValueError(f"Unknown resource kind '{value}'") from None


class ClusterMode(str, Enum):
    """CI integration the cluster runs under; selects the network datapath."""

    DEFAULT = ""
    FLANNEL = "flannel"
    EKS = "eks"
    GKE = "gke"
    KIND = "kind"
    MICROK8S = "microk8s"
    MINIKUBE = "minikube"

    @classmethod
    def parse(cls, value: str | None) -> ClusterMode:
        """Parse a mode string; empty or ``default`` selects the default overlay."""
        normalized = (value or "").strip().lower()
        if normalized == "default":
            return cls.DEFAULT
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(m.value or "default" for m in cls)
            raise ValueError(f"Unknown cluster mode '{value}' (expected one of: {valid})") from None

    @property
    def label(self) -> str:
        return self.value or "default"


@dataclass(frozen=True)
class ResourceRef:
    """Identifies one workload to poll.

    Attributes:
        kind: Workload kind.
        namespace: Kubernetes namespace.
        name: Object name. For pod sets this is a display name only.
        selector: Label selector used to list the pods. Defaults to ``k8s-app=<name>``.
        min_members: Minimum number of ready pods for a pod set.
    """

    kind: ResourceKind
    namespace: str
    name: str
    selector: str = ""
    min_members: int = 1

    def __post_init__(self) -> None:
        if not self.selector:
            object.__setattr__(self, "selector", f"k8s-app={self.name}")
        if self.min_members < 1:
            raise ValueError("min_members must be at least 1")

    def __str__(self) -> str:
        return f"{self.kind.value} {self.namespace}/{self.name}"


@dataclass(frozen=True)
class ResourceStatus:
    """A single observation of a resource's rollout counters."""

    found: bool = True
    desired: int = 0
    ready: int = 0
    updated: int | None = None
    observed: bool = True

    def describe(self) -> str:
        if not self.found:
            return "not found"
        text = f"{self.ready}/{self.desired} ready"
        if self.updated is not None:
            text += f", {self.updated} updated"
        if not self.observed:
            text += ", rollout not observed"
        return text


def is_ready(ref: ResourceRef, status: ResourceStatus) -> bool:
    """Return True when *status* satisfies the readiness predicate for *ref*'s kind."""
    if not status.found or not status.observed:
        return False
    if ref.kind is ResourceKind.POD_SET:
        # every listed pod ready and the full membership present; 3 of 5 is not ready
        return status.ready >= ref.min_members and status.ready == status.desired
    if ref.kind is ResourceKind.DEPLOYMENT and status.desired == 0:
        # scaled to zero: complete once the controller has seen the spec
        return status.ready == 0
    if status.desired <= 0 or status.ready != status.desired:
        return False
    return status.updated is None or status.updated == status.desired


@dataclass(frozen=True)
class ReadinessResult:
    """Outcome of one ``wait_ready`` call.

    ``ready`` is True for the Ready outcome; a TimedOut outcome carries the
    diagnostic text collected when the deadline elapsed.
    """

    ref: ResourceRef
    ready: bool
    elapsed: float
    polls: int
    diagnostic: str = ""
    cancelled: bool = False

    def __bool__(self) -> bool:
        return self.ready

    @property
    def timed_out(self) -> bool:
        return not self.ready


class ActionResult(str, Enum):
    """What a mutating step action reported."""

    APPLIED = "applied"
    NOT_APPLICABLE = "not-applicable"


class StepStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StepOutcome:
    """Pass/fail/skip record for one plan step."""

    step: str
    status: StepStatus
    elapsed: float = 0.0
    resource: str = ""
    diagnostic: str = ""
    reason: str = ""


@dataclass
class ProvisionReport:
    """Ordered step outcomes of one provisioning run."""

    mode: ClusterMode
    outcomes: list[StepOutcome] = field(default_factory=list)

    def add(self, outcome: StepOutcome) -> None:
        self.outcomes.append(outcome)

    def outcome(self, step: str) -> StepOutcome | None:
        for item in self.outcomes:
            if item.step == step:
                return item
        return None

    @property
    def succeeded(self) -> bool:
        return all(o.status is not StepStatus.FAILED for o in self.outcomes)

    def steps_with_status(self, status: StepStatus) -> list[str]:
        return [o.step for o in self.outcomes if o.status is status]
