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


"""Configuration classes and install options."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from infra_readiness.constants import (
    CILIUM_CONFIGMAP_PATCH,
    CILIUM_DEFAULT_DS_PATCH,
    DEFAULT_CILIUM_OPERATOR_TAG,
    DEFAULT_HELPER_TIMEOUT,
    DEFAULT_KUBECTL_TIMEOUT,
    DEFAULT_LONG_TIMEOUT,
    DEFAULT_MANIFEST_DIR,
    DEFAULT_POLL_INTERVAL_SECONDS,
)
from infra_readiness.models import ClusterMode


# ============================================================================
# Configuration classes
# ============================================================================

class TimeoutConfig(BaseSettings):
    """Readiness timeouts, auto-loaded from INFRA_* env vars.

    Attributes:
        helper_timeout: Default bound for a single readiness check, in seconds.
        long_timeout: Extended bound for multi-pod operators, in seconds.
        poll_interval: Delay between two status reads of the same resource.
        parallel_checks: Whether independent checks of one step run concurrently.
    """

    model_config = SettingsConfigDict(env_prefix="INFRA_", extra="ignore")

    helper_timeout: float = Field(default=DEFAULT_HELPER_TIMEOUT, gt=0)
    long_timeout: float = Field(default=DEFAULT_LONG_TIMEOUT, gt=0)
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, ge=1)
    parallel_checks: bool = True

    def resolve(self, name: str) -> float:
        """Map a plan timeout name (``default`` or ``long``) to seconds."""
        if name == "long":
            return self.long_timeout
        if name == "default":
            return self.helper_timeout
        raise ValueError(f"Unknown timeout class '{name}'")


class ClusterConfig(BaseSettings):
    """Cluster access and mode, auto-loaded from INFRA_* env vars.

    Attributes:
        integration: CI integration / network mode (empty for the default overlay).
        manifest_dir: Directory holding the component manifests and patches.
        kubectl_timeout: Maximum seconds for one kubectl invocation.
        cilium_operator_tag: Image tag of the cilium operator manifest to install.
    """

    model_config = SettingsConfigDict(env_prefix="INFRA_", extra="ignore")

    integration: str = ""
    manifest_dir: Path = Path(DEFAULT_MANIFEST_DIR)
    kubectl_timeout: int = Field(default=DEFAULT_KUBECTL_TIMEOUT, ge=1)
    cilium_operator_tag: str = DEFAULT_CILIUM_OPERATOR_TAG

    @property
    def mode(self) -> ClusterMode:
        return ClusterMode.parse(self.integration)


# ============================================================================
# Cilium install options
# ============================================================================

@dataclass(frozen=True)
class CiliumInstallOptions:
    """Options for installing the cilium daemon set.

    Attributes:
        ds_patch: Daemon set patch file, relative to the manifest directory.
        configmap_patch: Config map patch file, relative to the manifest directory.
        overrides: Extra ``cilium-config`` keys applied after the default patch.
        operator_tag: Image tag of the cilium operator manifest.
    """

    ds_patch: str = CILIUM_DEFAULT_DS_PATCH
    configmap_patch: str = CILIUM_CONFIGMAP_PATCH
    overrides: dict[str, str] = field(default_factory=dict)
    operator_tag: str = DEFAULT_CILIUM_OPERATOR_TAG
