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


"""Provision subcommands (run)."""

from __future__ import annotations

from pathlib import Path

import typer

from infra_readiness import console
from infra_readiness.config import CiliumInstallOptions, ClusterConfig, TimeoutConfig
from infra_readiness.orchestrator import render_plan, run_provisioning
from infra_readiness.plan import default_plan
from infra_readiness.utils import parse_set_overrides

app = typer.Typer(help="Provision infrastructure components.")


@app.command()
def run(
    overrides: list[str] = typer.Option(
        [], "--set", help="cilium-config override as key=value (repeatable)"),
    integration: str | None = typer.Option(
        None, "--integration", help="Network mode (overrides INFRA_INTEGRATION)"),
    operator_tag: str | None = typer.Option(
        None, "--operator-tag", help="cilium-operator manifest tag (overrides INFRA_CILIUM_OPERATOR_TAG)"),
    manifest_dir: str | None = typer.Option(
        None, "--manifest-dir", help="Manifest directory (overrides INFRA_MANIFEST_DIR)"),
    sequential: bool = typer.Option(
        False, "--sequential", help="Never run the checks of one step concurrently"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print the plan for the configured mode without touching the cluster"),
) -> None:
    """Install DNS, etcd-operator, cilium and cilium-operator and wait for readiness."""
    cluster_cfg = ClusterConfig()
    updates: dict = {}
    if integration is not None:
        updates["integration"] = integration
    if operator_tag is not None:
        updates["cilium_operator_tag"] = operator_tag
    if manifest_dir is not None:
        updates["manifest_dir"] = Path(manifest_dir)
    if updates:
        cluster_cfg = cluster_cfg.model_copy(update=updates)

    timeouts = TimeoutConfig()
    if sequential:
        timeouts = timeouts.model_copy(update={"parallel_checks": False})

    try:
        parsed = parse_set_overrides(overrides)
    except ValueError as err:
        raise typer.BadParameter(str(err), param_hint="--set") from err

    if dry_run:
        console.print(render_plan(default_plan(), cluster_cfg.mode))
        return

    options = CiliumInstallOptions(overrides=parsed, operator_tag=cluster_cfg.cilium_operator_tag)
    run_provisioning(cluster_cfg, timeouts, options)
