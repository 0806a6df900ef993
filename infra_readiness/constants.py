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


"""Constants, stack descriptor loading, and stack_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

# -- Resolved paths --
PACKAGE_DIR = Path(__file__).resolve().parent


def load_stack() -> dict:
    """Load component names, selectors and manifests from stack.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    stack_file = PACKAGE_DIR / "stack.yaml"
    with open(stack_file) as f:
        return yaml.safe_load(f)


STACK = load_stack()


def stack_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the STACK dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = STACK
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


# -- Timeouts (seconds) --
DEFAULT_HELPER_TIMEOUT = 240.0
DEFAULT_LONG_TIMEOUT = 600.0
DEFAULT_POLL_INTERVAL_SECONDS = 5.0
MIN_POLL_INTERVAL_SECONDS = 0.01
MIN_READ_TIMEOUT_SECONDS = 0.1
DEFAULT_KUBECTL_TIMEOUT = 60

# -- Namespaces --
NS_KUBE_SYSTEM = "kube-system"

# -- Component names --
DNS_NAMESPACE = stack_value("dns", "namespace", default=NS_KUBE_SYSTEM)
DNS_DEPLOYMENT = stack_value("dns", "deployment", default="coredns")
DNS_SERVICE = stack_value("dns", "service", default="kube-dns")
DNS_SELECTOR = stack_value("dns", "selector", default="k8s-app=kube-dns")

ETCD_OPERATOR_NAMESPACE = stack_value("etcd_operator", "namespace", default=NS_KUBE_SYSTEM)
ETCD_OPERATOR_NAME = stack_value("etcd_operator", "name", default="cilium-etcd-operator")
ETCD_OPERATOR_SELECTOR = stack_value("etcd_operator", "selector", default="io.cilium/app=etcd-operator")
ETCD_OPERATOR_MEMBERS = stack_value("etcd_operator", "members", default=5)

CILIUM_NAMESPACE = stack_value("cilium", "namespace", default=NS_KUBE_SYSTEM)
CILIUM_DAEMONSET = stack_value("cilium", "daemonset", default="cilium")
CILIUM_CONFIGMAP = stack_value("cilium", "configmap", default="cilium-config")
CILIUM_SELECTOR = stack_value("cilium", "selector", default="k8s-app=cilium")
CILIUM_DEFAULT_DS_PATCH = stack_value("cilium", "ds_patch", default="cilium-ds-patch.yaml")
CILIUM_CONFIGMAP_PATCH = stack_value("cilium", "configmap_patch", default="cilium-cm-patch.yaml")

CILIUM_OPERATOR_NAMESPACE = stack_value("cilium_operator", "namespace", default=NS_KUBE_SYSTEM)
CILIUM_OPERATOR_DEPLOYMENT = stack_value("cilium_operator", "deployment", default="cilium-operator")
CILIUM_OPERATOR_SELECTOR = stack_value("cilium_operator", "selector", default="io.cilium/app=operator")
DEFAULT_CILIUM_OPERATOR_TAG = "head"

# -- Preflight components --
PREFLIGHT_DNS = "dns"
PREFLIGHT_CILIUM = "cilium"

# -- Diagnostics --
DIAGNOSTIC_QUERY_TIMEOUT = 30
DIAGNOSTIC_MAX_CHARS = 8000

# -- Config defaults --
DEFAULT_MANIFEST_DIR = "manifests"
