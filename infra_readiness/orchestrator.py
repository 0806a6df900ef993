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


"""Orchestration functions that compose domain modules into workflows."""

from __future__ import annotations

from rich.panel import Panel
from rich.table import Table

from infra_readiness import console
from infra_readiness.cluster import Cluster, KubectlCluster
from infra_readiness.config import CiliumInstallOptions, ClusterConfig, TimeoutConfig
from infra_readiness.errors import ProvisionError, ReadinessTimeout
from infra_readiness.models import ClusterMode, ProvisionReport, ReadinessResult, ResourceRef, StepStatus
from infra_readiness.plan import ProvisioningPlan, default_plan
from infra_readiness.policy import ModePolicy
from infra_readiness.poller import ReadinessPoller
from infra_readiness.sequencer import ProvisioningSequencer
from infra_readiness.utils import require_command

_STATUS_STYLE = {
    StepStatus.PASSED: "green",
    StepStatus.FAILED: "red",
    StepStatus.SKIPPED: "yellow",
}


# ============================================================================
# Internal helpers
# ============================================================================

def _check_prerequisites() -> None:
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    require_command("kubectl")
    console.print("[green]\u2705 All required tools are available[/green]")


def render_report(report: ProvisionReport) -> Table:
    """Build a rich table with one row per step outcome."""
    table = Table(title=f"Provisioning report ({report.mode.label} mode)")
    table.add_column("Step")
    table.add_column("Status")
    table.add_column("Elapsed", justify="right")
    table.add_column("Resource / reason")
    for outcome in report.outcomes:
        style = _STATUS_STYLE[outcome.status]
        table.add_row(
            outcome.step,
            f"[{style}]{outcome.status.value}[/{style}]",
            f"{outcome.elapsed:.1f}s" if outcome.status is not StepStatus.SKIPPED else "-",
            outcome.resource or outcome.reason,
        )
    return table


def render_plan(plan: ProvisioningPlan, mode: ClusterMode, policy: ModePolicy | None = None) -> Table:
    """Build a rich table describing *plan* as it would run in *mode*."""
    policy = policy or ModePolicy()
    table = Table(title=f"Provisioning plan ({mode.label} mode)")
    table.add_column("#", justify="right")
    table.add_column("Step")
    table.add_column("Action")
    table.add_column("Checks")
    table.add_column("After")
    for idx, step in enumerate(plan, start=1):
        reason = policy.skip_reason(step.id, mode)
        name = f"[dim]{step.id} (skipped: {reason})[/dim]" if reason else step.id
        checks = ", ".join(
            f"{c.ref}" + (f" +{c.preflight} preflight" if c.preflight else "") + f" [{c.timeout}]"
            for c in step.checks
        )
        if step.only_if_applied:
            checks += f" (if {step.only_if_applied} applied)"
        table.add_row(str(idx), name, step.action or "-", checks or "-", ", ".join(step.after) or "-")
    return table


def build_sequencer(
    cluster: Cluster,
    timeouts: TimeoutConfig,
    install_options: CiliumInstallOptions,
) -> ProvisioningSequencer:
    poller = ReadinessPoller(cluster, poll_interval=timeouts.poll_interval)
    return ProvisioningSequencer(
        cluster, poller, policy=ModePolicy(), timeouts=timeouts, install_options=install_options,
    )


# ============================================================================
# Public API
# ============================================================================

def run_provisioning(
    cluster_cfg: ClusterConfig,
    timeouts: TimeoutConfig,
    install_options: CiliumInstallOptions,
    plan: ProvisioningPlan | None = None,
) -> ProvisionReport:
    """Provision the infrastructure stack and print the step report.

    Args:
        cluster_cfg: Cluster configuration; its integration selects the mode.
        timeouts: Readiness timeout configuration.
        install_options: Cilium patches, overrides and operator tag.
        plan: Plan to execute, or None for the default plan.

    Returns:
        The provisioning report.

    Raises:
        ProvisionError: If an action fails or a readiness check times out.
    """
    mode = cluster_cfg.mode
    _check_prerequisites()
    sequencer = build_sequencer(KubectlCluster(cluster_cfg), timeouts, install_options)
    try:
        report = sequencer.provision(mode, plan or default_plan())
    except ProvisionError as err:
        if err.report is not None:
            console.print(render_report(err.report))
        raise
    console.print(render_report(report))
    return report


def wait_for_resource(
    cluster_cfg: ClusterConfig,
    ref: ResourceRef,
    timeout: float,
    poll_interval: float,
    preflight: str | None = None,
) -> ReadinessResult:
    """Wait for a single resource and raise ReadinessTimeout if it never becomes ready."""
    poller = ReadinessPoller(KubectlCluster(cluster_cfg), poll_interval=poll_interval)
    console.print(f"[yellow]\u2139\ufe0f  Waiting for {ref} (timeout {timeout:.0f}s)...[/yellow]")
    result = poller.wait_ready(ref, timeout, preflight=preflight)
    if not result:
        raise ReadinessTimeout(ref, result.elapsed, result.diagnostic)
    console.print(f"[green]\u2705 {ref} is ready ({result.elapsed:.1f}s, {result.polls} polls)[/green]")
    return result


def wait_for_termination(cluster_cfg: ClusterConfig, timeout: float, poll_interval: float) -> None:
    """Wait until no pod is terminating.

    Raises:
        RuntimeError: If pods are still terminating after *timeout*, or could not be listed.
    """
    poller = ReadinessPoller(KubectlCluster(cluster_cfg), poll_interval=poll_interval)
    console.print("[yellow]\u2139\ufe0f  Waiting for terminating pods to be deleted...[/yellow]")
    remaining = poller.wait_terminated(timeout)
    if remaining:
        raise RuntimeError(f"{remaining} terminating pod(s) were not deleted after {timeout:.0f}s")
    console.print("[green]\u2705 No terminating pods left[/green]")
