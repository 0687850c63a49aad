"""
kubereats.runtime.identity

Per-process service identity.

Responsibilities:
- Describe which service kind this process serves and under which name.
- Mint an instance id that is unique for the lifetime of the process.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field

from kubereats.settings import Settings


class ServiceKind(enum.StrEnum):
    user = "user"
    order = "order"
    restaurant = "restaurant"


@dataclass(frozen=True, slots=True)
class ServiceIdentity:
    """
    Immutable identity of one running instance.
    Created once at process start and shared read-only across layers.
    """

    kind: ServiceKind
    name: str
    listen_address: str
    instance_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("service name must not be empty")

    @property
    def banner(self) -> str:
        return f"{self.name} is running!"


def identity_from_settings(settings: Settings) -> ServiceIdentity:
    return ServiceIdentity(
        kind=ServiceKind(settings.service),
        name=settings.service_name,
        listen_address=settings.listen_address,
    )


# --- Module Notes -----------------------------------------------------------
# The instance id is not configurable; a restarted process always gets a new one.
