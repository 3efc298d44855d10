"""Shared test fixtures and libvirt stub injection for CI environments."""

from __future__ import annotations

import sys
import types
from typing import Dict, List, Optional
from unittest.mock import MagicMock


def _install_libvirt_stub():
    """Inject a minimal libvirt stub into sys.modules if the real library is not available."""
    if "libvirt" in sys.modules:
        return

    try:
        import libvirt  # noqa: F401

        return  # real library available
    except (ImportError, SystemExit):
        pass

    stub = types.ModuleType("libvirt")

    class libvirtError(Exception):
        def get_error_message(self):
            return str(self)

    stub.libvirtError = libvirtError
    stub.open = MagicMock(return_value=MagicMock())

    # virDomainState values
    stub.VIR_DOMAIN_NOSTATE = 0
    stub.VIR_DOMAIN_RUNNING = 1
    stub.VIR_DOMAIN_BLOCKED = 2
    stub.VIR_DOMAIN_PAUSED = 3
    stub.VIR_DOMAIN_SHUTDOWN = 4
    stub.VIR_DOMAIN_SHUTOFF = 5
    stub.VIR_DOMAIN_CRASHED = 6
    stub.VIR_DOMAIN_PMSUSPENDED = 7

    # virConnect / virDomain stubs
    stub.virConnect = MagicMock
    stub.virDomain = MagicMock

    sys.modules["libvirt"] = stub


_install_libvirt_stub()

import pytest  # noqa: E402

from rdplaunch.exceptions import HypervisorError  # noqa: E402
from rdplaunch.models import LaunchConfig, VMState  # noqa: E402


class FakeHypervisor:
    """In-memory stand-in for rdplaunch.hypervisor.Hypervisor.

    ``states`` is consumed one entry per state() call; the last entry repeats.
    Operations named in ``failures`` raise HypervisorError.
    """

    def __init__(
        self,
        states: List[VMState],
        names: Optional[List[str]] = None,
        macs: Optional[List[str]] = None,
        failures: Optional[Dict[str, str]] = None,
    ) -> None:
        self.states = list(states)
        self.names = set(names if names is not None else ["RDPWindows"])
        self.macs = macs if macs is not None else ["52:54:00:aa:bb:cc"]
        self.failures = failures or {}
        self.calls: List[str] = []
        self.closed = False

    def domain_names(self):
        self.calls.append("domain_names")
        return set(self.names)

    def state(self, name):
        self.calls.append("state")
        if len(self.states) > 1:
            return self.states.pop(0)
        return self.states[0]

    def _op(self, action):
        self.calls.append(action)
        if action in self.failures:
            raise HypervisorError(self.failures[action])

    def start(self, name):
        self._op("start")

    def resume(self, name):
        self._op("resume")

    def wakeup(self, name):
        self._op("wakeup")

    def destroy(self, name):
        self._op("destroy")

    def mac_addresses(self, name):
        self._op("mac_addresses")
        return list(self.macs)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_hypervisor():
    def _make(*states, **kwargs):
        return FakeHypervisor(list(states), **kwargs)

    return _make


@pytest.fixture
def default_launch_config() -> LaunchConfig:
    """Return a LaunchConfig with the stock defaults and test credentials."""
    return LaunchConfig(
        vm_name="RDPWindows",
        rdp_port=3389,
        rdp_user="alice",
        rdp_password="hunter2",
        rdp_domain=None,
        rdp_ip=None,
        rdp_client="xfreerdp",
        rdp_flags=[],
        rdp_scale=100,
        required_groups=("libvirt", "kvm"),
        notify_enabled=False,
    )


# All environment variables that parse_env() reads, cleared for a clean slate.
_PARSE_ENV_VARS = [
    "VM_NAME",
    "RDP_PORT",
    "RDP_USER",
    "RDP_PASS",
    "RDP_DOMAIN",
    "RDP_IP",
    "RDP_CLIENT",
    "RDP_FLAGS",
    "RDP_SCALE",
    "REQUIRED_GROUPS",
    "NOTIFY",
    "RDPLAUNCH_CONFIG",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Clear all variables parse_env() reads and point the config file at an empty location."""
    for key in _PARSE_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("RDPLAUNCH_CONFIG", str(tmp_path / "missing.yaml"))


@pytest.fixture
def mock_env(monkeypatch):
    """Helper to set environment variables for tests."""

    def _set(**kwargs):
        for key, value in kwargs.items():
            if value is None:
                monkeypatch.delenv(key, raising=False)
            else:
                monkeypatch.setenv(key, str(value))

    return _set
