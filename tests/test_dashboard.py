"""Tests for the console status table."""

import io
from datetime import datetime

from rich.console import Console

from devicewatch.console.dashboard import build_status_table, render_status
from devicewatch.monitor.models import CheckResult, Device, HealthState


def make_console():
    return Console(file=io.StringIO(), width=120, force_terminal=False, color_system=None)


def results():
    return [
        CheckResult(Device(description="Router", ip="192.168.1.1"), HealthState.ONLINE, True, None),
        CheckResult(Device(description="NAS", ip="192.168.1.20"), HealthState.OFFLINE, True, HealthState.ONLINE),
    ]


def test_table_has_one_row_per_device():
    table = build_status_table(results())

    assert [c.header for c in table.columns] == ["Description", "Device IP", "Status"]
    assert table.row_count == 2


def test_render_shows_every_device_and_state():
    console = make_console()

    render_status(results(), datetime(2025, 1, 1, 12, 0, 0), out=console)
    output = console.file.getvalue()

    assert "Router" in output
    assert "192.168.1.1" in output
    assert "🟢  online" in output
    assert "NAS" in output
    assert "🔴  offline" in output
    assert "(changed)" in output
    assert "2025-01-01 12:00:00" in output
    # Separator line
    assert "─" in output


def test_baseline_rows_not_marked_changed():
    console = make_console()
    first_cycle = [
        CheckResult(Device(description="Router", ip="192.168.1.1"), HealthState.ONLINE, True, None),
    ]

    render_status(first_cycle, out=console)

    assert "(changed)" not in console.file.getvalue()


def test_empty_fleet_renders_empty_table():
    console = make_console()

    render_status([], out=console)
    output = console.file.getvalue()

    assert "Description" in output
    assert "Device IP" in output
    assert build_status_table([]).row_count == 0
