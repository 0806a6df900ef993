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


"""Mode subcommands (show, check-scenario)."""

from __future__ import annotations

import typer

from infra_readiness import console
from infra_readiness.config import ClusterConfig
from infra_readiness.models import ClusterMode
from infra_readiness.policy import ModePolicy

SKIP_EXIT_CODE = 3

app = typer.Typer(help="Network mode helpers.")


@app.command()
def show() -> None:
    """Print the configured network mode."""
    typer.echo(ClusterConfig().mode.label)


@app.command("check-scenario")
def check_scenario(
    unsupported: list[str] = typer.Option(
        ["flannel"], "--unsupported", help="Mode the scenario does not support (repeatable)"),
) -> None:
    """Exit with code 3 and print the reason if a scenario must be skipped in the current mode."""
    try:
        modes = [ClusterMode.parse(value) for value in unsupported]
    except ValueError as err:
        raise typer.BadParameter(str(err), param_hint="--unsupported") from err

    decision = ModePolicy.should_skip_scenario(ClusterConfig().mode, modes)
    if decision.skip:
        console.print(f"[yellow]{decision.reason}[/yellow]")
        raise typer.Exit(code=SKIP_EXIT_CODE)
    console.print("[green]Scenario supported in the current mode[/green]")
