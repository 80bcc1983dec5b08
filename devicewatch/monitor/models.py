"""Device and health state models."""

from enum import Enum
from typing import NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class HealthState(str, Enum):
    """Binary reachability classification."""

    ONLINE = "Online"
    OFFLINE = "Offline"

    @classmethod
    def from_reachable(cls, reachable: bool) -> "HealthState":
        return cls.ONLINE if reachable else cls.OFFLINE

    @property
    def marker(self) -> str:
        """Colored circle used in the dashboard."""
        return "🟢" if self is HealthState.ONLINE else "🔴"


class Device(BaseModel):
    """A monitored network endpoint, as listed in the devices file."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    description: str
    ip: str

    @field_validator("description", "ip", mode="before")
    @classmethod
    def validate_not_empty(cls, v):
        if v is None:
            raise ValueError("field is required")
        v = str(v).strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class CheckResult(NamedTuple):
    """Outcome of one device check within a cycle."""

    device: Device
    state: HealthState
    changed: bool
    previous: Optional[HealthState]

    @property
    def change_line(self) -> str:
        """Human-readable notification line for this device."""
        return f"{self.device.description} is {self.state.value}"
