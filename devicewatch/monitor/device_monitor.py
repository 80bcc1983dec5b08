"""Polling cycle: probe devices, detect changes, render and notify."""

import asyncio
import logging
import time
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from devicewatch.console.dashboard import render_status
from devicewatch.metrics import cycle_duration_seconds, device_online_status, status_changes_total
from devicewatch.monitor.models import CheckResult, Device, HealthState
from devicewatch.monitor.status_tracker import StatusTracker
from devicewatch.notifications.notifier import send_status_change_notification
from devicewatch.scanner.host_checker import probe

logger = logging.getLogger(__name__)

# Fixed polling interval between cycle starts
CHECK_INTERVAL_SECONDS = 30

DEFAULT_PROBE_CONCURRENCY = 16

Prober = Callable[..., Awaitable[HealthState]]
Notify = Callable[[str], Awaitable[bool]]
Renderer = Callable[[Sequence[CheckResult], Optional[datetime]], None]


class DeviceMonitor:
    """Runs monitoring cycles over a fixed device list.

    Owns the StatusTracker for the lifetime of the process. Each call to
    run_cycle() is one full pass: probe every device, update the tracker in
    inventory order, render the table and send at most one notification.
    """

    def __init__(
        self,
        devices: Sequence[Device],
        tracker: Optional[StatusTracker] = None,
        prober: Prober = probe,
        notify: Notify = send_status_change_notification,
        render: Renderer = render_status,
        tcp_fallback_ports: Optional[Sequence[int]] = None,
        probe_concurrency: int = DEFAULT_PROBE_CONCURRENCY,
    ):
        self.devices = list(devices)
        self.tracker = tracker if tracker is not None else StatusTracker()
        self.prober = prober
        self.notify = notify
        self.render = render
        self.tcp_fallback_ports = list(tcp_fallback_ports or [])
        self.probe_concurrency = max(1, probe_concurrency)
        self.cycles_run = 0
        self._stopped = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        """Prevent further cycles from starting."""
        self._stopped = True

    async def _probe_all(self) -> Dict[str, HealthState]:
        """Probe each distinct address once, concurrently.

        All probes finish before this returns.
        """
        addresses = list(dict.fromkeys(d.ip for d in self.devices))
        semaphore = asyncio.Semaphore(self.probe_concurrency)

        async def bounded(address: str) -> HealthState:
            async with semaphore:
                return await self.prober(address, tcp_fallback_ports=self.tcp_fallback_ports)

        outcomes = await asyncio.gather(
            *(bounded(address) for address in addresses),
            return_exceptions=True,
        )

        states = {}
        for address, outcome in zip(addresses, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error("Probe of %s raised %s, treating as offline", address, outcome)
                outcome = HealthState.OFFLINE
            states[address] = outcome
        return states

    async def run_cycle(self) -> List[CheckResult]:
        """Run one monitoring cycle.

        Returns:
            Per-device results in inventory order, empty if the monitor is stopped.
        """
        if self._stopped:
            logger.debug("Monitor stopped, skipping cycle")
            return []

        started = time.monotonic()
        states = await self._probe_all()

        results = []
        for device in self.devices:
            state = states[device.ip]
            changed, previous = self.tracker.update(device, state)
            results.append(CheckResult(device, state, changed, previous))

            device_online_status.labels(device=device.description, ip=device.ip).set(
                1 if state is HealthState.ONLINE else 0
            )
            if changed:
                status_changes_total.labels(state=state.value.lower()).inc()
                logger.info(
                    "%s (%s) is %s (previous: %s)",
                    device.description,
                    device.ip,
                    state.value,
                    previous.value if previous else "unknown",
                )

        try:
            self.render(results, datetime.now())
        except Exception as e:
            logger.error("Failed to render status table: %s", e)

        changes = [result.change_line for result in results if result.changed]
        if changes:
            try:
                await self.notify("\n".join(changes))
            except Exception as e:
                logger.error("Notification failed: %s", e)

        self.cycles_run += 1
        duration = time.monotonic() - started
        cycle_duration_seconds.observe(duration)
        logger.debug(
            "Cycle %d finished in %.2fs (%d devices, %d changes)",
            self.cycles_run,
            duration,
            len(results),
            len(changes),
        )
        if duration > CHECK_INTERVAL_SECONDS:
            logger.warning(
                "Cycle took %.1fs, longer than the %ds interval; next tick will be skipped",
                duration,
                CHECK_INTERVAL_SECONDS,
            )

        return results
