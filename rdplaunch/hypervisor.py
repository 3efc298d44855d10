"""libvirt access for rdp-vm-launcher."""

from __future__ import annotations

from typing import List, Optional, Set
from xml.etree.ElementTree import ParseError, fromstring

try:
    import libvirt  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit(f"libvirt python bindings not available: {exc}")

from rdplaunch.constants import LIBVIRT_URI
from rdplaunch.exceptions import ConfigError, HypervisorError
from rdplaunch.models import VMState
from rdplaunch.utils import log

# A domain that is being torn down reports no state at all.
_STATE_MAP = {
    libvirt.VIR_DOMAIN_NOSTATE: VMState.DYING,
    libvirt.VIR_DOMAIN_RUNNING: VMState.RUNNING,
    libvirt.VIR_DOMAIN_BLOCKED: VMState.RUNNING,
    libvirt.VIR_DOMAIN_PAUSED: VMState.PAUSED,
    libvirt.VIR_DOMAIN_SHUTDOWN: VMState.SHUTTING_DOWN,
    libvirt.VIR_DOMAIN_SHUTOFF: VMState.SHUT_OFF,
    libvirt.VIR_DOMAIN_CRASHED: VMState.CRASHED,
    libvirt.VIR_DOMAIN_PMSUSPENDED: VMState.SUSPENDED,
}


def state_from_code(code: int) -> VMState:
    return _STATE_MAP.get(code, VMState.UNKNOWN)


def _error_message(exc: Exception) -> str:
    return exc.get_error_message() if hasattr(exc, "get_error_message") else str(exc)


class Hypervisor:
    """Typed view of the handful of libvirt operations the launcher needs.

    Every libvirt failure surfaces as ``HypervisorError`` so callers can
    translate it into the failure code of their own stage.
    """

    def __init__(self, uri: str = LIBVIRT_URI) -> None:
        self.uri = uri
        self.conn: Optional[libvirt.virConnect] = None

    def connect(self) -> None:
        try:
            self.conn = libvirt.open(self.uri)
        except libvirt.libvirtError as exc:
            raise ConfigError(f"Failed to open libvirt connection to {self.uri}: {_error_message(exc)}") from exc
        if self.conn is None:
            raise ConfigError(f"Failed to open libvirt connection to {self.uri}")
        log("DEBUG", f"Connected to {self.uri}")

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _domain(self, name: str) -> libvirt.virDomain:
        if self.conn is None:
            raise ConfigError("libvirt connection not established")
        try:
            return self.conn.lookupByName(name)
        except libvirt.libvirtError as exc:
            raise HypervisorError(_error_message(exc)) from exc

    def domain_names(self) -> Set[str]:
        if self.conn is None:
            raise ConfigError("libvirt connection not established")
        try:
            return {dom.name() for dom in self.conn.listAllDomains(0)}
        except libvirt.libvirtError as exc:
            raise HypervisorError(_error_message(exc)) from exc

    def state(self, name: str) -> VMState:
        try:
            code, _reason = self._domain(name).state()
        except (HypervisorError, libvirt.libvirtError):
            return VMState.ABSENT
        return state_from_code(code)

    def _call(self, name: str, action: str, *args) -> None:
        log("DEBUG", f"Domain {name}: {action}")
        domain = self._domain(name)
        try:
            getattr(domain, action)(*args)
        except libvirt.libvirtError as exc:
            raise HypervisorError(_error_message(exc)) from exc

    def start(self, name: str) -> None:
        self._call(name, "create")

    def resume(self, name: str) -> None:
        self._call(name, "resume")

    def wakeup(self, name: str) -> None:
        """Resume a domain suspended by guest power management."""
        self._call(name, "pMWakeup", 0)

    def destroy(self, name: str) -> None:
        self._call(name, "destroy")

    def mac_addresses(self, name: str) -> List[str]:
        """Return the lower-cased MAC address of every interface in the domain definition."""
        try:
            xml = self._domain(name).XMLDesc(0)
        except libvirt.libvirtError as exc:
            raise HypervisorError(_error_message(exc)) from exc
        try:
            root = fromstring(xml)
        except ParseError as exc:
            raise HypervisorError(f"Unreadable domain XML for {name}: {exc}") from exc
        macs = []
        for mac in root.findall("./devices/interface/mac"):
            address = mac.get("address")
            if address:
                macs.append(address.lower())
        return macs
