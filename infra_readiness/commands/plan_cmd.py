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


"""Plan subcommands (show)."""

from __future__ import annotations

import typer

from infra_readiness import console
from infra_readiness.config import ClusterConfig
from infra_readiness.models import ClusterMode
from infra_readiness.orchestrator import render_plan
from infra_readiness.plan import default_plan

app = typer.Typer(help="Inspect the provisioning plan.")


@app.command()
def show(
    integration: str | None = typer.Option(
        None, "--integration", help="Network mode (overrides INFRA_INTEGRATION)"),
) -> None:
    """Print the default plan as it would run in the configured mode."""
    mode = ClusterMode.parse(integration) if integration is not None else ClusterConfig().mode
    console.print(render_plan(default_plan(), mode))
