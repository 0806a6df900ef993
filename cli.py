#!/usr/bin/env python3
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


"""
cli.py - Readiness verification and provisioning for the cluster infrastructure stack.

Subcommands:
    provision  Install DNS, etcd-operator, cilium, cilium-operator (and flannel) in order
    wait       Wait for a single resource, or for terminating pods to go away
    plan       Show the provisioning plan for the configured network mode
    mode       Show the network mode, or check whether a scenario must be skipped

Environment Variables:
    - INFRA_INTEGRATION (default: empty, the default overlay; e.g. flannel)
    - INFRA_MANIFEST_DIR (default: manifests)
    - INFRA_HELPER_TIMEOUT (default: 240)
    - INFRA_LONG_TIMEOUT (default: 600)
    - INFRA_POLL_INTERVAL (default: 5)

Examples:
    # Provision the full stack
    ./cli.py provision run

    # Provision over flannel with an extra cilium-config key
    INFRA_INTEGRATION=flannel ./cli.py provision run --set debug=true

    # Wait for the cilium daemon set
    ./cli.py wait resource daemonset kube-system cilium --timeout 600

For detailed usage information, run: ./cli.py --help
"""

from __future__ import annotations

import logging
import sys

import typer

from infra_readiness import console
from infra_readiness.commands import mode_cmd, plan_cmd, provision_cmd, wait_cmd

app = typer.Typer(
    help="Readiness verification and provisioning for the cluster infrastructure stack.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.add_typer(provision_cmd.app, name="provision")
app.add_typer(wait_cmd.app, name="wait")
app.add_typer(plan_cmd.app, name="plan")
app.add_typer(mode_cmd.app, name="mode")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
