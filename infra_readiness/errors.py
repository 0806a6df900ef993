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


"""Error taxonomy for readiness waits and provisioning runs."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from infra_readiness.models import ProvisionReport, ResourceRef


class InfraReadinessError(RuntimeError):
    """Base class for all errors raised by infra_readiness."""


class PlanError(InfraReadinessError):
    """A provisioning plan is malformed (duplicate ids, unknown or late predecessors)."""


class PreflightError(InfraReadinessError):
    """An application-level preflight probe failed."""

    def __init__(self, component: str, message: str) -> None:
        self.component = component
        super().__init__(f"{component} preflight check failed: {message}")


class ReadinessTimeout(InfraReadinessError):
    """A resource did not become ready before its deadline."""

    def __init__(self, ref: ResourceRef, elapsed: float, diagnostic: str = "") -> None:
        self.ref = ref
        self.elapsed = elapsed
        self.diagnostic = diagnostic
        message = f"{ref} not ready after {elapsed:.1f}s"
        if diagnostic:
            message += f":\n{diagnostic}"
        super().__init__(message)


class ApplyFailure(InfraReadinessError):
    """A mutating action failed before any readiness check ran."""

    def __init__(self, action: str, cause: BaseException) -> None:
        self.action = action
        self.cause = cause
        super().__init__(f"{action} failed: {cause}")


class ProvisionError(InfraReadinessError):
    """Provisioning aborted at *step*; *cause* is the ReadinessTimeout or ApplyFailure."""

    def __init__(
        self,
        step: str,
        cause: ReadinessTimeout | ApplyFailure,
        report: ProvisionReport | None = None,
    ) -> None:
        self.step = step
        self.cause = cause
        self.report = report
        super().__init__(f"Step '{step}' failed: {cause}")

    @property
    def resource(self) -> ResourceRef | None:
        return getattr(self.cause, "ref", None)

    @property
    def diagnostic(self) -> str:
        return getattr(self.cause, "diagnostic", "")
