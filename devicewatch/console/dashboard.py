"""Console status table, redrawn every cycle."""

from datetime import datetime
from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from devicewatch.monitor.models import CheckResult, HealthState

console = Console()

STATE_STYLES = {
    HealthState.ONLINE: "bold green",
    HealthState.OFFLINE: "bold red",
}


def build_status_table(results: Sequence[CheckResult], checked_at: Optional[datetime] = None) -> Table:
    """Build the fleet table, one row per device in inventory order."""
    title = None
    if checked_at is not None:
        title = f"Device status at {checked_at:%Y-%m-%d %H:%M:%S}"

    table = Table(title=title, box=box.SIMPLE_HEAVY, padding=(0, 1))
    table.add_column("Description", no_wrap=True)
    table.add_column("Device IP", no_wrap=True)
    table.add_column("Status", no_wrap=True)

    for result in results:
        status = Text(f"{result.state.marker}  {result.state.value.lower()}", style=STATE_STYLES[result.state])
        if result.changed and result.previous is not None:
            status.append("  (changed)", style="dim")
        table.add_row(result.device.description, result.device.ip, status)

    return table


def render_status(
    results: Sequence[CheckResult],
    checked_at: Optional[datetime] = None,
    out: Optional[Console] = None,
) -> None:
    """Print the status table followed by a separator line."""
    out = out or console
    out.print(build_status_table(results, checked_at))
    out.rule(style="dim")
