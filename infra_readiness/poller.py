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


"""Bounded readiness polling for a single resource."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, stop_when_event_set

from infra_readiness import logger
from infra_readiness.cluster import Cluster
from infra_readiness.constants import DEFAULT_POLL_INTERVAL_SECONDS, MIN_POLL_INTERVAL_SECONDS
from infra_readiness.diagnostics import DiagnosticCollector
from infra_readiness.models import ReadinessResult, ResourceRef, ResourceStatus, is_ready

CANCELLED_DIAGNOSTIC = "cancelled: another check of the same step failed"


@dataclass
class _PollState:
    timeout: float
    polls: int = 0
    last_status: ResourceStatus | None = None
    last_error: str = ""
    started: float = field(default_factory=time.monotonic)

    @property
    def deadline(self) -> float:
        return self.started + self.timeout

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started


class ReadinessPoller:
    """Polls one resource until its readiness predicate holds or the deadline passes.

    The poller only reads cluster state. Calls for different resources may run
    concurrently; each call keeps its own state and nothing survives between calls.
    A wait returns at most one poll interval after its deadline: sleeps are cut
    short at the deadline and every read is given the time left until then plus
    one interval.

    Args:
        cluster: Cluster to read resource status from.
        poll_interval: Seconds between two reads, clamped to a small minimum.
        collector: Diagnostic collector used on timeout; defaults to one over *cluster*.
        sleep: Sleep function used between polls.
    """

    def __init__(
        self,
        cluster: Cluster,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        collector: DiagnosticCollector | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.cluster = cluster
        self.poll_interval = max(poll_interval, MIN_POLL_INTERVAL_SECONDS)
        self.collector = collector or DiagnosticCollector(cluster)
        self.sleep = sleep

    def _retrying(self, state: _PollState, cancel: threading.Event | None = None) -> Retrying:
        stop = stop_after_delay(state.timeout)
        sleep = self.sleep
        if cancel is not None:
            stop = stop | stop_when_event_set(cancel)
            sleep = cancel.wait

        def _wait(retry_state) -> float:
            return min(self.poll_interval, max(state.deadline - time.monotonic(), 0.0))

        return Retrying(
            stop=stop,
            wait=_wait,
            retry=retry_if_result(lambda ok: not ok),
            sleep=sleep,
        )

    def _budget(self, state: _PollState) -> float:
        """Seconds a read started now may take without overrunning the wait bound."""
        return max(state.deadline + self.poll_interval - time.monotonic(), 0.0)

    def _check_once(self, ref: ResourceRef, preflight: str | None, state: _PollState) -> bool:
        state.polls += 1
        try:
            status = self.cluster.resource_status(ref, timeout=self._budget(state))
        except (RuntimeError, OSError) as exc:
            logger.debug("Reading %s failed (poll %d): %s", ref, state.polls, exc)
            state.last_error = str(exc)
            return False
        state.last_status = status
        if not is_ready(ref, status):
            logger.debug("%s not ready yet: %s", ref, status.describe())
            return False
        if preflight:
            try:
                self.cluster.preflight_check(preflight, timeout=self._budget(state))
            except (RuntimeError, OSError) as exc:
                logger.debug("%s preflight '%s' failed: %s", ref, preflight, exc)
                state.last_error = str(exc)
                return False
        state.last_error = ""
        return True

    def wait_ready(
        self,
        ref: ResourceRef,
        timeout: float,
        preflight: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ReadinessResult:
        """Wait until *ref* is ready, and its *preflight* probe passes if one is named.

        Args:
            ref: Resource to poll.
            timeout: Wall-clock bound in seconds.
            preflight: Optional preflight component checked once the pods are ready.
            cancel: Event that ends the wait early, without collecting diagnostics.
                Sleeps between polls wake up as soon as it is set.

        Returns:
            A ready result, or a timed-out result carrying the diagnostic text.
        """
        state = _PollState(timeout)
        try:
            self._retrying(state, cancel)(self._check_once, ref, preflight, state)
        except RetryError:
            elapsed = state.elapsed
            if cancel is not None and cancel.is_set():
                logger.debug("Wait for %s cancelled after %.1fs", ref, elapsed)
                return ReadinessResult(ref, False, elapsed, state.polls, CANCELLED_DIAGNOSTIC, cancelled=True)
            logger.info("%s not ready after %.1fs (%d polls)", ref, elapsed, state.polls)
            return ReadinessResult(ref, False, elapsed, state.polls, self._diagnose(ref, state))
        return ReadinessResult(ref, True, state.elapsed, state.polls)

    def _diagnose(self, ref: ResourceRef, state: _PollState) -> str:
        lines = []
        if state.last_status is not None:
            lines.append(f"last status: {state.last_status.describe()}")
        if state.last_error:
            lines.append(f"last error: {state.last_error}")
        collected = self.collector.collect(ref)
        if collected:
            lines.append(collected)
        return "\n".join(lines)

    def wait_terminated(self, timeout: float) -> int:
        """Wait until no pod in the cluster is terminating.

        Returns:
            Number of pods still terminating at the last successful listing (0 on success).

        Raises:
            RuntimeError: If no listing succeeded before the deadline.
        """
        state = _PollState(timeout)
        count: int | None = None

        def _check() -> bool:
            nonlocal count
            state.polls += 1
            try:
                count = self.cluster.terminating_pods(timeout=self._budget(state))
            except (RuntimeError, OSError) as exc:
                logger.debug("Listing terminating pods failed: %s", exc)
                state.last_error = str(exc)
                return False
            return count == 0

        try:
            self._retrying(state)(_check)
        except RetryError:
            if count is None:
                raise RuntimeError(
                    f"Could not list terminating pods within {timeout:.0f}s: {state.last_error}"
                ) from None
            logger.warning("%d pod(s) still terminating after %.0fs", count, timeout)
            return count
        return 0
