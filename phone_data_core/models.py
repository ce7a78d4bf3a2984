from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float
    timestamp: datetime = field(default_factory=_utcnow, compare=False)

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")

    def describe(self) -> str:
        return f"Location: {self.latitude}, {self.longitude}"


class PermissionState(Enum):
    UNKNOWN = "unknown"
    DENIED = "denied"
    GRANTED = "granted"


class SettingsState(Enum):
    SATISFIED = "satisfied"
    NEEDS_RESOLUTION = "needs_resolution"
    UNRESOLVABLE = "unresolvable"


class Priority(Enum):
    HIGH_ACCURACY = "high_accuracy"
    BALANCED = "balanced"
    LOW_POWER = "low_power"


@dataclass(frozen=True)
class LocationRequestSpec:
    priority: Priority = Priority.HIGH_ACCURACY
    interval_ms: int = 10_000
    fastest_interval_ms: int = 5_000


LOCATION_REQUEST = LocationRequestSpec()


class AcquisitionPhase(Enum):
    INIT = "init"
    AWAITING_PERMISSION = "awaiting_permission"
    CHECKING_SETTINGS = "checking_settings"
    AWAITING_SETTINGS_RESOLUTION = "awaiting_settings_resolution"
    FETCHING_LAST = "fetching_last"
    SUBSCRIBED = "subscribed"
    DENIED = "denied"
    FAILED = "failed"

    @property
    def in_flight(self) -> bool:
        """True while a one-shot provider call is outstanding."""
        return self in _IN_FLIGHT


_IN_FLIGHT = frozenset(
    {
        AcquisitionPhase.AWAITING_PERMISSION,
        AcquisitionPhase.CHECKING_SETTINGS,
        AcquisitionPhase.AWAITING_SETTINGS_RESOLUTION,
        AcquisitionPhase.FETCHING_LAST,
    }
)


@dataclass
class AcquisitionSession:
    session_id: int
    permission: PermissionState = PermissionState.UNKNOWN
    settings: Optional[SettingsState] = None
    subscription: Optional[Any] = None
    phase: AcquisitionPhase = AcquisitionPhase.INIT
    position: Optional[Position] = None
    # id of the one-shot provider call whose completion is still expected
    pending_call: Optional[int] = None


@dataclass(frozen=True)
class ClassifiedAppEntry:
    display_name: Optional[str]
    identifier: Optional[str]
    is_financial: bool = False

    @property
    def label(self) -> str:
        name = "" if self.display_name is None else str(self.display_name)
        ident = "" if self.identifier is None else str(self.identifier)
        marker = "(Financial) " if self.is_financial else ""
        return f"{marker}{name} ({ident})"


@dataclass(frozen=True)
class DeviceInfo:
    model: str
    os_version: str
