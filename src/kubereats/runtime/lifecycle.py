"""
kubereats.runtime.lifecycle

Process-wide lifecycle state machine (Starting -> Ready -> Draining -> Stopped).

Responsibilities:
- Own the single LifecycleState of the process (single writer, many readers).
- Answer liveness/readiness from a consistent snapshot in constant time.
- Record startup faults so a failed instance never promotes itself to Ready.
"""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass

from kubereats.observability.logging import get_logger
from kubereats.runtime.identity import ServiceIdentity

log = get_logger(__name__)


class LifecycleState(enum.StrEnum):
    starting = "starting"
    ready = "ready"
    draining = "draining"
    stopped = "stopped"


# Allowed edges. `stopped` has none: it is terminal.
_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.starting: frozenset({LifecycleState.ready, LifecycleState.stopped}),
    LifecycleState.ready: frozenset({LifecycleState.draining}),
    LifecycleState.draining: frozenset({LifecycleState.stopped}),
    LifecycleState.stopped: frozenset(),
}


@dataclass(frozen=True, slots=True)
class HealthReport:
    """
    Derived view of the lifecycle at the instant of a health request.
    Built from one read of the state, so alive/ready never disagree with `state`.
    """

    state: LifecycleState
    alive: bool
    ready: bool


class ServiceRuntime:
    """
    Restricted-mutation holder for the lifecycle state.

    Only the transition methods below write `_state`, and they serialize on a lock
    that is held for the compare-and-set alone. Readers never take the lock: a
    single attribute read is atomic, so they always see a whole state.
    """

    def __init__(self, *, identity: ServiceIdentity) -> None:
        self._identity = identity
        self._state: LifecycleState = LifecycleState.starting
        self._startup_fault: BaseException | None = None
        self._write_lock = threading.Lock()

    @property
    def identity(self) -> ServiceIdentity:
        return self._identity

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def startup_fault(self) -> BaseException | None:
        return self._startup_fault

    # --- health ---------------------------------------------------------------

    def liveness(self) -> bool:
        # Starting (even after a startup fault) still counts as alive; only a
        # corrupted holder makes the process eligible for a restart.
        return isinstance(self._state, LifecycleState)

    def readiness(self) -> bool:
        return self._state is LifecycleState.ready

    def report(self) -> HealthReport:
        state = self._state
        alive = isinstance(state, LifecycleState)
        return HealthReport(state=state, alive=alive, ready=state is LifecycleState.ready)

    # --- transitions ----------------------------------------------------------

    def mark_ready(self) -> bool:
        with self._write_lock:
            if self._startup_fault is not None:
                log.warning(
                    "lifecycle_transition_refused",
                    from_state=str(self._state),
                    to_state=str(LifecycleState.ready),
                    reason="startup_fault",
                )
                return False
            return self._transition(LifecycleState.ready)

    def begin_drain(self) -> bool:
        """
        Ready -> Draining. Readiness reports False before this returns.

        Idempotent: a second call while draining is a no-op. Called while starting or
        stopped it only logs, so signal handlers can call it unconditionally.
        """

        with self._write_lock:
            if self._state is LifecycleState.draining:
                return False
            return self._transition(LifecycleState.draining)

    def stop(self) -> bool:
        with self._write_lock:
            if self._state is LifecycleState.stopped:
                return False
            return self._transition(LifecycleState.stopped)

    def fail_startup(self, error: BaseException) -> None:
        with self._write_lock:
            if self._state is not LifecycleState.starting:
                log.warning("startup_fault_ignored", state=str(self._state), error=str(error))
                return
            self._startup_fault = error
        log.error(
            "startup_fault",
            error=str(error),
            error_type=type(error).__name__,
        )

    def _transition(self, target: LifecycleState) -> bool:
        # Caller holds `_write_lock`.
        current = self._state
        if target not in _TRANSITIONS.get(current, frozenset()):
            log.warning(
                "lifecycle_transition_refused",
                from_state=str(current),
                to_state=str(target),
            )
            return False
        self._state = target
        log.info("lifecycle_transition", from_state=str(current), to_state=str(target))
        return True


# --- Module Notes -----------------------------------------------------------
# The orchestrator restarts instances stuck in `starting` through its own startup
# timeout; nothing in-process retries a failed bootstrap.
