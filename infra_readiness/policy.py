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


"""Network-mode policy: which steps run and which scenarios are skipped."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import NamedTuple

from infra_readiness.models import ClusterMode

STEP_CILIUM_RUNNING = "cilium-running"
STEP_FLANNEL_APPLY = "flannel-apply"

# Steps that only run in the listed modes; every other step always runs.
MODE_ONLY_STEPS: dict[str, frozenset[ClusterMode]] = {
    STEP_CILIUM_RUNNING: frozenset({ClusterMode.FLANNEL}),
    STEP_FLANNEL_APPLY: frozenset({ClusterMode.FLANNEL}),
}

DEFAULT_UNSUPPORTED_MODES = frozenset({ClusterMode.FLANNEL})


class SkipDecision(NamedTuple):
    skip: bool
    reason: str = ""


class ModePolicy:
    """Pure decisions over a ``ClusterMode`` value.

    Args:
        mode_only_steps: Step id to the set of modes in which the step runs.
    """

    def __init__(self, mode_only_steps: Mapping[str, Iterable[ClusterMode]] | None = None) -> None:
        source = MODE_ONLY_STEPS if mode_only_steps is None else mode_only_steps
        self.mode_only_steps = {step: frozenset(modes) for step, modes in source.items()}

    def is_step_required(self, step_id: str, mode: ClusterMode) -> bool:
        modes = self.mode_only_steps.get(step_id)
        return modes is None or mode in modes

    def skip_reason(self, step_id: str, mode: ClusterMode) -> str:
        if self.is_step_required(step_id, mode):
            return ""
        wanted = ", ".join(sorted(m.label for m in self.mode_only_steps[step_id]))
        return f"only runs in {wanted} mode (current: {mode.label})"

    @staticmethod
    def should_skip_scenario(
        mode: ClusterMode,
        unsupported: Iterable[ClusterMode] = DEFAULT_UNSUPPORTED_MODES,
    ) -> SkipDecision:
        """Decide whether a scenario marked incompatible with *unsupported* modes should be skipped."""
        if mode in frozenset(unsupported):
            reason = f'This feature is not supported in Cilium "{mode.label}" mode. Skipping test.'
            return SkipDecision(True, reason)
        return SkipDecision(False, "")
