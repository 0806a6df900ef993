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


"""Utility functions for kubectl, override parsing, and command checks."""

from __future__ import annotations

import json
import subprocess

import sh

from infra_readiness.constants import DEFAULT_KUBECTL_TIMEOUT


def parse_set_overrides(values: list[str]) -> dict[str, str]:
    """Parse ``key=value`` strings from ``--set`` options into a dict.

    Args:
        values: List of ``key=value`` strings; later keys win.

    Returns:
        Mapping of config keys to values.

    Raises:
        ValueError: If an entry has no ``=`` or an empty key.
    """
    overrides: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Invalid override '{item}', expected key=value")
        overrides[key] = value
    return overrides


def configmap_merge_patch(data: dict[str, str]) -> str:
    """Build a JSON merge patch that sets config map *data* keys.

    Args:
        data: Config map keys and string values.

    Returns:
        JSON document suitable for ``kubectl patch --type merge -p``.
    """
    return json.dumps({"data": {key: str(value) for key, value in data.items()}}, sort_keys=True)


def truncate(text: str, limit: int) -> str:
    """Trim *text* to *limit* characters, marking the cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + f"\n... ({len(text) - limit} more characters)"


def require_command(cmd: str) -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.

    Raises:
        RuntimeError: If the command is not found.
    """
    try:
        sh.which(cmd)
    except sh.ErrorReturnCode as err:
        raise RuntimeError(f"Required command '{cmd}' not found. Please install it first.") from err


def run_kubectl(args: list[str], timeout: float = DEFAULT_KUBECTL_TIMEOUT) -> tuple[bool, str, str]:
    """Run a kubectl command via subprocess and return (success, stdout, stderr).

    Reads go through subprocess rather than sh so that JSON on stdout stays
    separate from warnings kubectl prints on stderr.

    Args:
        args: kubectl arguments (e.g. ``["get", "pods", "-n", "kube-system"]``).
        timeout: Maximum seconds to wait for the command to complete.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    try:
        result = subprocess.run(
            ["kubectl", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)
