"""
kubereats.runtime

Service runtime package.

Responsibilities:
- Lifecycle state machine and health answers.
- Startup bootstrap and graceful drain.
"""

from kubereats.runtime.bootstrap import StartupCheck, StartupFault, run_startup
from kubereats.runtime.drain import DrainOutcome, drain
from kubereats.runtime.identity import ServiceIdentity, ServiceKind
from kubereats.runtime.inflight import InflightTracker
from kubereats.runtime.lifecycle import HealthReport, LifecycleState, ServiceRuntime

__all__ = [
    "DrainOutcome",
    "HealthReport",
    "InflightTracker",
    "LifecycleState",
    "ServiceIdentity",
    "ServiceKind",
    "ServiceRuntime",
    "StartupCheck",
    "StartupFault",
    "drain",
    "run_startup",
]
