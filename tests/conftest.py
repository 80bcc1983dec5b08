"""Shared pytest fixtures."""

import os
from typing import List

import pytest

# Set test environment before importing app modules
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:test-token")
os.environ.setdefault("TELEGRAM_CHAT_ID", "-1000000000001")


@pytest.fixture
def sample_devices():
    """Sample device inventory, in file order."""
    from devicewatch.monitor.models import Device

    return [
        Device(description="Router", ip="192.168.1.1"),
        Device(description="NAS", ip="192.168.1.20"),
        Device(description="Printer", ip="printer.lan"),
    ]


class FakeProber:
    """Prober returning scripted states per address.

    States are looked up in ``states``; unknown addresses are offline.
    Every call is recorded in ``calls``.
    """

    def __init__(self, states=None):
        from devicewatch.monitor.models import HealthState

        self.default = HealthState.OFFLINE
        self.states = dict(states or {})
        self.calls: List[str] = []

    async def __call__(self, address, tcp_fallback_ports=None):
        self.calls.append(address)
        return self.states.get(address, self.default)


class FakeNotifier:
    """Notifier recording every message it is asked to send."""

    def __init__(self, result: bool = True):
        self.result = result
        self.messages: List[str] = []

    async def __call__(self, text):
        self.messages.append(text)
        return self.result


@pytest.fixture
def fake_prober():
    return FakeProber()


@pytest.fixture
def fake_notifier():
    return FakeNotifier()


@pytest.fixture
def rendered():
    """Render callback collecting each cycle's results."""
    calls = []

    def render(results, checked_at=None):
        calls.append(list(results))

    render.calls = calls
    return render
