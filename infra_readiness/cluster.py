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


"""Cluster collaborator protocol and its kubectl-backed implementation."""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Protocol

import sh

from infra_readiness import console, logger
from infra_readiness.config import CiliumInstallOptions, ClusterConfig
from infra_readiness.constants import (
    CILIUM_CONFIGMAP,
    CILIUM_DAEMONSET,
    CILIUM_NAMESPACE,
    DIAGNOSTIC_QUERY_TIMEOUT,
    DNS_NAMESPACE,
    DNS_SERVICE,
    MIN_READ_TIMEOUT_SECONDS,
    PREFLIGHT_CILIUM,
    PREFLIGHT_DNS,
    stack_value,
)
from infra_readiness.errors import PreflightError
from infra_readiness.models import ActionResult, ResourceKind, ResourceRef, ResourceStatus
from infra_readiness.utils import configmap_merge_patch, run_kubectl


class Cluster(Protocol):
    """Operations the sequencer and poller need from a cluster.

    Mutating actions raise on failure. Reads raise RuntimeError on transport errors and
    return ``ResourceStatus(found=False)`` for objects that do not exist yet. A read
    given a *timeout* must not take longer than that many seconds.
    """

    def apply_manifest(self, path: Path) -> None: ...

    def apply_dns(self) -> ActionResult: ...

    def deploy_etcd_operator(self) -> ActionResult: ...

    def install_cilium(self, options: CiliumInstallOptions) -> ActionResult: ...

    def install_cilium_operator(self, tag: str) -> ActionResult: ...

    def apply_flannel(self) -> ActionResult: ...

    def resource_status(self, ref: ResourceRef, timeout: float | None = None) -> ResourceStatus: ...

    def terminating_pods(self, timeout: float | None = None) -> int: ...

    def preflight_check(self, component: str, timeout: float | None = None) -> None: ...

    def exec(self, args: list[str]) -> str: ...


def _is_pod_ready(pod: dict) -> bool:
    conditions = pod.get("status", {}).get("conditions") or []
    return any(c.get("type") == "Ready" and c.get("status") == "True" for c in conditions)


def _is_terminating(pod: dict) -> bool:
    return bool(pod.get("metadata", {}).get("deletionTimestamp"))


def _rollout_observed(obj: dict) -> bool:
    generation = obj.get("metadata", {}).get("generation", 0)
    return obj.get("status", {}).get("observedGeneration", 0) >= generation


class KubectlCluster:
    """Cluster implementation that shells out to kubectl.

    Mutating calls go through ``sh`` so that failures raise
    ``sh.ErrorReturnCode``; reads go through ``run_kubectl``.
    """

    def __init__(self, cfg: ClusterConfig) -> None:
        self.cfg = cfg

    # ------------------------------------------------------------------
    # Mutating actions
    # ------------------------------------------------------------------

    def manifest(self, relative: str) -> Path:
        """Resolve a manifest path against the configured manifest directory."""
        return self.cfg.manifest_dir / relative

    def apply_manifest(self, path: Path) -> None:
        if not path.exists():
            raise RuntimeError(f"Manifest not found: {path}")
        logger.debug("kubectl apply -f %s", path)
        sh.kubectl("apply", "-f", str(path), _timeout=self.cfg.kubectl_timeout)

    def apply_dns(self) -> ActionResult:
        self.apply_manifest(self.manifest(stack_value("dns", "manifest")))
        return ActionResult.APPLIED

    def deploy_etcd_operator(self) -> ActionResult:
        for relative in stack_value("etcd_operator", "manifests", default=[]):
            self.apply_manifest(self.manifest(relative))
        return ActionResult.APPLIED

    def _patch(self, namespace: str, kind: str, name: str, patch: str, patch_type: str) -> None:
        sh.kubectl(
            "-n", namespace, "patch", kind, name,
            "--type", patch_type, "-p", patch,
            _timeout=self.cfg.kubectl_timeout,
        )

    def install_cilium(self, options: CiliumInstallOptions) -> ActionResult:
        """Apply the cilium descriptor, then the default patches and caller overrides."""
        self.apply_manifest(self.manifest(stack_value("cilium", "manifest")))

        ds_patch = self.manifest(options.ds_patch)
        cm_patch = self.manifest(options.configmap_patch)
        for patch_file in (ds_patch, cm_patch):
            if not patch_file.exists():
                raise RuntimeError(f"Patch file not found: {patch_file}")
        self._patch(CILIUM_NAMESPACE, "daemonset", CILIUM_DAEMONSET, ds_patch.read_text(), "strategic")
        self._patch(CILIUM_NAMESPACE, "configmap", CILIUM_CONFIGMAP, cm_patch.read_text(), "strategic")
        if options.overrides:
            console.print(f"[yellow]   Applying {len(options.overrides)} cilium config override(s)[/yellow]")
            self._patch(
                CILIUM_NAMESPACE, "configmap", CILIUM_CONFIGMAP,
                configmap_merge_patch(options.overrides), "merge",
            )
        return ActionResult.APPLIED

    def install_cilium_operator(self, tag: str) -> ActionResult:
        """Apply the operator manifest for *tag*; versions without one are not applicable."""
        template = stack_value("cilium_operator", "manifest", default="cilium-operator-{tag}.yaml")
        path = self.manifest(template.format(tag=tag))
        if not path.exists():
            logger.info("No cilium-operator manifest for tag %s at %s", tag, path)
            return ActionResult.NOT_APPLICABLE
        self.apply_manifest(path)
        return ActionResult.APPLIED

    def apply_flannel(self) -> ActionResult:
        self.apply_manifest(self.manifest(stack_value("flannel", "manifest")))
        return ActionResult.APPLIED

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _read_timeout(self, budget: float | None) -> float:
        if budget is None:
            return self.cfg.kubectl_timeout
        return max(min(self.cfg.kubectl_timeout, budget), MIN_READ_TIMEOUT_SECONDS)

    def _get_json(self, args: list[str], timeout: float | None = None) -> dict | None:
        ok, stdout, stderr = run_kubectl([*args, "-o", "json"], timeout=self._read_timeout(timeout))
        if not ok:
            if "NotFound" in stderr:
                return None
            raise RuntimeError(f"kubectl {' '.join(args)} failed: {stderr.strip()[:200]}")
        try:
            return json.loads(stdout)
        except ValueError as exc:
            raise RuntimeError(f"kubectl {' '.join(args)} returned invalid JSON: {exc}") from exc

    def resource_status(self, ref: ResourceRef, timeout: float | None = None) -> ResourceStatus:
        if ref.kind is ResourceKind.POD_SET:
            pods = self._get_json(["-n", ref.namespace, "get", "pods", "-l", ref.selector], timeout) or {}
            live = [p for p in pods.get("items", []) if not _is_terminating(p)]
            return ResourceStatus(desired=len(live), ready=sum(1 for p in live if _is_pod_ready(p)))

        resource = "daemonset" if ref.kind is ResourceKind.DAEMON_SET else "deployment"
        obj = self._get_json(["-n", ref.namespace, "get", resource, ref.name], timeout)
        if obj is None:
            return ResourceStatus(found=False)
        status = obj.get("status", {})
        if ref.kind is ResourceKind.DAEMON_SET:
            desired = status.get("desiredNumberScheduled", 0)
            ready = status.get("numberReady", 0)
            updated = status.get("updatedNumberScheduled", 0)
        else:
            desired = obj.get("spec", {}).get("replicas", 1)
            ready = status.get("readyReplicas", 0)
            updated = status.get("updatedReplicas", 0)
        observed = _rollout_observed(obj)
        if not observed:
            updated = 0
        return ResourceStatus(desired=desired, ready=ready, updated=updated, observed=observed)

    def terminating_pods(self, timeout: float | None = None) -> int:
        pods = self._get_json(["get", "pods", "--all-namespaces"], timeout) or {}
        return sum(1 for p in pods.get("items", []) if _is_terminating(p))

    def preflight_check(self, component: str, timeout: float | None = None) -> None:
        if component == PREFLIGHT_DNS:
            self._dns_preflight(timeout)
        elif component == PREFLIGHT_CILIUM:
            self._cilium_preflight(timeout)
        else:
            raise ValueError(f"Unknown preflight component '{component}'")

    def _dns_preflight(self, timeout: float | None) -> None:
        """The DNS service must have a cluster IP and at least one ready endpoint."""
        deadline = None if timeout is None else time.monotonic() + timeout
        svc = self._get_json(["-n", DNS_NAMESPACE, "get", "service", DNS_SERVICE], timeout)
        if svc is None:
            raise PreflightError(PREFLIGHT_DNS, f"service {DNS_NAMESPACE}/{DNS_SERVICE} not found")
        cluster_ip = svc.get("spec", {}).get("clusterIP")
        if not cluster_ip or cluster_ip == "None":
            raise PreflightError(PREFLIGHT_DNS, f"service {DNS_SERVICE} has no cluster IP")

        remaining = None if deadline is None else deadline - time.monotonic()
        endpoints = self._get_json(["-n", DNS_NAMESPACE, "get", "endpoints", DNS_SERVICE], remaining) or {}
        addresses = [
            addr
            for subset in endpoints.get("subsets") or []
            for addr in subset.get("addresses") or []
        ]
        if not addresses:
            raise PreflightError(PREFLIGHT_DNS, f"service {DNS_SERVICE} has no ready endpoints")

    def _cilium_preflight(self, timeout: float | None) -> None:
        ok, _, stderr = run_kubectl(
            ["-n", CILIUM_NAMESPACE, "exec", f"ds/{CILIUM_DAEMONSET}", "--", "cilium", "status", "--brief"],
            timeout=self._read_timeout(timeout),
        )
        if not ok:
            raise PreflightError(PREFLIGHT_CILIUM, stderr.strip()[:200] or "cilium status returned non-zero")

    def exec(self, args: list[str]) -> str:
        ok, stdout, stderr = run_kubectl(args, timeout=DIAGNOSTIC_QUERY_TIMEOUT)
        if not ok:
            raise RuntimeError(stderr.strip() or f"kubectl {' '.join(args)} failed")
        return stdout
