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


"""Best-effort cluster state capture for resources that missed their deadline."""

from __future__ import annotations

from infra_readiness import logger
from infra_readiness.cluster import Cluster
from infra_readiness.constants import DIAGNOSTIC_MAX_CHARS
from infra_readiness.models import ResourceKind, ResourceRef
from infra_readiness.utils import truncate

_KIND_RESOURCE = {
    ResourceKind.DAEMON_SET: "daemonset",
    ResourceKind.DEPLOYMENT: "deployment",
}


class DiagnosticCollector:
    """Gathers human-readable state for a resource. Never raises."""

    def __init__(self, cluster: Cluster, max_chars: int = DIAGNOSTIC_MAX_CHARS) -> None:
        self.cluster = cluster
        self.max_chars = max_chars

    def queries(self, ref: ResourceRef) -> list[list[str]]:
        """Read-only kubectl queries run for *ref*."""
        queries = [["-n", ref.namespace, "get", "pods", "-l", ref.selector, "-o", "wide"]]
        resource = _KIND_RESOURCE.get(ref.kind)
        if resource:
            queries.insert(0, ["-n", ref.namespace, "get", resource, ref.name, "-o", "wide"])
        return queries

    def collect(self, ref: ResourceRef) -> str:
        """Return the output of every diagnostic query for *ref*.

        A failing query contributes a ``<query failed: ...>`` line instead
        of raising, so the caller's timeout is never masked.
        """
        sections: list[str] = []
        for args in self.queries(ref):
            header = f"$ kubectl {' '.join(args)}"
            try:
                output = self.cluster.exec(args).rstrip()
            except Exception as exc:
                logger.warning("Diagnostic query for %s failed: %s", ref, exc)
                output = f"<query failed: {exc}>"
            sections.append(f"{header}\n{output}")
        return truncate("\n".join(sections), self.max_chars)
