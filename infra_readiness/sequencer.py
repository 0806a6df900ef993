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


"""Runs a provisioning plan step by step against a cluster."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait

from rich.panel import Panel

from infra_readiness import console, logger
from infra_readiness.cluster import Cluster
from infra_readiness.config import CiliumInstallOptions, TimeoutConfig
from infra_readiness.errors import ApplyFailure, ProvisionError, ReadinessTimeout
from infra_readiness.models import (
    ActionResult,
    ClusterMode,
    ProvisionReport,
    ReadinessResult,
    StepOutcome,
    StepStatus,
)
from infra_readiness.plan import (
    ACTION_APPLY_DNS,
    ACTION_APPLY_FLANNEL,
    ACTION_DEPLOY_ETCD_OPERATOR,
    ACTION_INSTALL_CILIUM,
    ACTION_INSTALL_CILIUM_OPERATOR,
    ProvisioningPlan,
    ReadinessCheck,
    Step,
    default_plan,
)
from infra_readiness.policy import ModePolicy
from infra_readiness.poller import ReadinessPoller


class ProvisioningSequencer:
    """Applies each step's action, then waits for its checks, strictly in plan order.

    A step's checks must all pass before the next step's action is issued.
    Checks inside one step are independent and may run on a thread pool.

    Args:
        cluster: Cluster to mutate and read.
        poller: Readiness poller bound to the same cluster.
        policy: Mode policy gating mode-specific steps.
        timeouts: Timeout configuration resolving ``default``/``long`` check bounds.
        install_options: Cilium patches, overrides and operator tag.
    """

    def __init__(
        self,
        cluster: Cluster,
        poller: ReadinessPoller,
        policy: ModePolicy | None = None,
        timeouts: TimeoutConfig | None = None,
        install_options: CiliumInstallOptions | None = None,
    ) -> None:
        self.cluster = cluster
        self.poller = poller
        self.policy = policy or ModePolicy()
        self.timeouts = timeouts or TimeoutConfig()
        self.install_options = install_options or CiliumInstallOptions()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _actions(self) -> dict[str, Callable[[], ActionResult | None]]:
        return {
            ACTION_APPLY_DNS: self.cluster.apply_dns,
            ACTION_DEPLOY_ETCD_OPERATOR: self.cluster.deploy_etcd_operator,
            ACTION_INSTALL_CILIUM: lambda: self.cluster.install_cilium(self.install_options),
            ACTION_INSTALL_CILIUM_OPERATOR: lambda: self.cluster.install_cilium_operator(
                self.install_options.operator_tag),
            ACTION_APPLY_FLANNEL: self.cluster.apply_flannel,
        }

    def _run_action(self, step: Step) -> ActionResult | None:
        """Run *step*'s action.

        Returns:
            The action result, or None when a fire-and-forget action failed.

        Raises:
            ApplyFailure: If the action fails and the step is not fire-and-forget.
        """
        try:
            result = self._actions()[step.action]()
        except Exception as exc:
            if step.fire_and_forget:
                logger.warning("%s failed, continuing: %s", step.action, exc)
                console.print(f"[yellow]\u26a0\ufe0f  {step.action} failed (checked later): {exc}[/yellow]")
                return None
            raise ApplyFailure(step.action, exc) from exc
        if result is ActionResult.NOT_APPLICABLE:
            console.print(f"[yellow]   {step.action} not applicable, skipping[/yellow]")
        return result or ActionResult.APPLIED

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _wait(self, check: ReadinessCheck, cancel: threading.Event | None = None) -> ReadinessResult:
        timeout = self.timeouts.resolve(check.timeout)
        console.print(f"[yellow]\u2139\ufe0f  Waiting for {check.ref} (timeout {timeout:.0f}s)...[/yellow]")
        result = self.poller.wait_ready(check.ref, timeout, preflight=check.preflight, cancel=cancel)
        if result:
            console.print(f"[green]\u2705 {check.ref} is ready ({result.elapsed:.1f}s)[/green]")
        elif result.cancelled:
            console.print(f"[yellow]   Stopped waiting for {check.ref}[/yellow]")
        else:
            console.print(f"[red]\u274c {check.ref} not ready after {result.elapsed:.1f}s[/red]")
        return result

    def _run_checks(self, checks: tuple[ReadinessCheck, ...]) -> list[ReadinessResult]:
        """Run all checks of one step and return their results in declared order.

        The first failing check ends the step: remaining checks are cancelled
        and report ``cancelled`` results.
        """
        if len(checks) < 2 or not self.timeouts.parallel_checks:
            results = []
            for check in checks:
                result = self._wait(check)
                results.append(result)
                if not result:
                    break
            return results

        outputs: dict[int, str] = {}
        lock = threading.Lock()
        cancel = threading.Event()

        def _run_check(idx: int, check: ReadinessCheck) -> ReadinessResult:
            with console.buffered() as buf:
                result = self._wait(check, cancel)
            with lock:
                outputs[idx] = buf.getvalue()
            return result

        with ThreadPoolExecutor(max_workers=len(checks)) as executor:
            futures = [executor.submit(_run_check, idx, check) for idx, check in enumerate(checks)]
            pending = set(futures)
            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                if any(not future.result() for future in done):
                    cancel.set()
            results = [future.result() for future in futures]

        for idx in range(len(checks)):
            if outputs.get(idx):
                console.print(outputs[idx], end="")
        return results

    # ------------------------------------------------------------------
    # Plan
    # ------------------------------------------------------------------

    def _skip_reason(self, step: Step, mode: ClusterMode, applied: dict[str, ActionResult | None]) -> str:
        reason = self.policy.skip_reason(step.id, mode)
        if reason:
            return reason
        if step.only_if_applied and applied.get(step.only_if_applied) is not ActionResult.APPLIED:
            return f"{step.only_if_applied} did not install anything"
        return ""

    def provision(self, mode: ClusterMode, plan: ProvisioningPlan | None = None) -> ProvisionReport:
        """Run *plan* (the default stack plan if omitted) for the given cluster *mode*.

        Args:
            mode: Network mode of the cluster, read once by the caller.
            plan: Plan to execute.

        Returns:
            Report with one outcome per step.

        Raises:
            ProvisionError: On the first action failure or readiness timeout.
        """
        plan = plan or default_plan()
        report = ProvisionReport(mode=mode)
        applied: dict[str, ActionResult | None] = {}
        logger.info("Provisioning %d steps in %s mode", len(plan), mode.label)

        for step in plan:
            reason = self._skip_reason(step, mode, applied)
            if reason:
                logger.info("Skipping %s: %s", step.id, reason)
                report.add(StepOutcome(step.id, StepStatus.SKIPPED, reason=reason))
                continue

            console.print(Panel.fit(step.title, style="bold blue"))
            started = time.monotonic()

            if step.action is not None:
                try:
                    applied[step.id] = self._run_action(step)
                except ApplyFailure as err:
                    report.add(StepOutcome(step.id, StepStatus.FAILED, time.monotonic() - started,
                                           reason=str(err)))
                    raise ProvisionError(step.id, err, report) from err

            results = self._run_checks(step.checks)
            failed = next((r for r in results if not r and not r.cancelled), None)
            resources = ", ".join(str(r.ref) for r in results)
            if failed is not None:
                err = ReadinessTimeout(failed.ref, failed.elapsed, failed.diagnostic)
                report.add(StepOutcome(step.id, StepStatus.FAILED, time.monotonic() - started,
                                       resource=str(failed.ref), diagnostic=failed.diagnostic))
                raise ProvisionError(step.id, err, report) from err

            report.add(StepOutcome(step.id, StepStatus.PASSED, time.monotonic() - started, resource=resources))

        console.print("[green]\u2705 All infrastructure components are ready[/green]")
        return report
