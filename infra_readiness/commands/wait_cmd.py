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


"""Wait subcommands (resource, terminated)."""

from __future__ import annotations

import typer

from infra_readiness.config import ClusterConfig, TimeoutConfig
from infra_readiness.models import ResourceKind, ResourceRef
from infra_readiness.orchestrator import wait_for_resource, wait_for_termination

app = typer.Typer(help="Wait for resources.")


@app.command()
def resource(
    kind: str = typer.Argument(..., help="daemonset, deployment or pods"),
    namespace: str = typer.Argument(..., help="Namespace of the resource"),
    name: str = typer.Argument(..., help="Resource name (display name for pods)"),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Seconds to wait (default: INFRA_HELPER_TIMEOUT)"),
    selector: str = typer.Option(
        "", "--selector", "-l", help="Pod label selector (default: k8s-app=<name>)"),
    min_members: int = typer.Option(
        1, "--min-members", help="Minimum ready pods for a pod set"),
    preflight: str | None = typer.Option(
        None, "--preflight", help="Preflight probe to require (dns, cilium)"),
) -> None:
    """Wait until one resource is ready."""
    timeouts = TimeoutConfig()
    try:
        ref = ResourceRef(ResourceKind.parse(kind), namespace, name, selector=selector, min_members=min_members)
    except ValueError as err:
        raise typer.BadParameter(str(err)) from err
    wait_for_resource(
        ClusterConfig(), ref,
        timeout if timeout is not None else timeouts.helper_timeout,
        timeouts.poll_interval,
        preflight=preflight,
    )


@app.command()
def terminated(
    timeout: float | None = typer.Option(
        None, "--timeout", help="Seconds to wait (default: INFRA_HELPER_TIMEOUT)"),
) -> None:
    """Wait until no pod in the cluster is terminating."""
    timeouts = TimeoutConfig()
    wait_for_termination(
        ClusterConfig(),
        timeout if timeout is not None else timeouts.helper_timeout,
        timeouts.poll_interval,
    )
