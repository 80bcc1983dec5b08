"""In-memory last-known health state per device."""

from typing import Dict, Optional, Tuple

from devicewatch.monitor.models import Device, HealthState


class StatusTracker:
    """Tracks the last observed HealthState of each device, keyed by address.

    Entries are created on first observation and updated on every later one;
    they are never removed during a run. Not safe for concurrent writers:
    callers apply updates one at a time.
    """

    def __init__(self) -> None:
        self._states: Dict[str, HealthState] = {}

    def update(
        self,
        device: Device,
        new_state: HealthState,
    ) -> Tuple[bool, Optional[HealthState]]:
        """Record a new observation for a device.

        Args:
            device: The observed device.
            new_state: State observed in the current cycle.

        Returns:
            Tuple of (changed, previous). ``changed`` is True on the first
            observation of the address and whenever the state differs from
            the stored one; ``previous`` is None on first observation.
        """
        previous = self._states.get(device.ip)
        self._states[device.ip] = new_state
        return previous is None or previous != new_state, previous

    def get(self, address: str) -> Optional[HealthState]:
        return self._states.get(address)

    def snapshot(self) -> Dict[str, HealthState]:
        return dict(self._states)

    def __contains__(self, address: object) -> bool:
        return address in self._states

    def __len__(self) -> int:
        return len(self._states)
