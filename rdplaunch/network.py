"""Address discovery and RDP port probing for rdp-vm-launcher."""

from __future__ import annotations

import socket
from typing import TYPE_CHECKING, Dict, Iterable, Optional

from rdplaunch.constants import IP_DISCOVERY_LIMIT, IPV4_RE, POLL_INTERVAL, PORT_CHECK_TIMEOUT
from rdplaunch.exceptions import HypervisorError, LaunchError
from rdplaunch.models import FailureCode
from rdplaunch.notify import Notifier
from rdplaunch.utils import log, poll_until, run

if TYPE_CHECKING:
    from rdplaunch.hypervisor import Hypervisor


def parse_neighbors(output: str) -> Dict[str, str]:
    """Map lower-cased MAC addresses to IPv4 addresses from ``ip neigh`` output.

    Lines look like ``192.168.122.45 dev virbr0 lladdr 52:54:00:aa:bb:cc REACHABLE``.
    Entries without a link-layer address (INCOMPLETE, FAILED) are skipped.
    """
    table: Dict[str, str] = {}
    for line in output.splitlines():
        parts = line.split()
        if not parts or not IPV4_RE.match(parts[0]):
            continue
        if "lladdr" not in parts:
            continue
        idx = parts.index("lladdr")
        if idx + 1 >= len(parts):
            continue
        table.setdefault(parts[idx + 1].lower(), parts[0])
    return table


def read_neighbor_table() -> str:
    result = run(["ip", "-4", "neigh", "show"], capture_output=True)
    return result.stdout


def find_ip(macs: Iterable[str], neighbors: Dict[str, str]) -> Optional[str]:
    for mac in macs:
        ip = neighbors.get(mac.lower())
        if ip:
            return ip
    return None


class NetworkResolver:
    def __init__(
        self,
        hypervisor: "Hypervisor",
        notifier: Notifier,
        interval: float = POLL_INTERVAL,
        limit: float = IP_DISCOVERY_LIMIT,
    ) -> None:
        self.hv = hypervisor
        self.notifier = notifier
        self.interval = interval
        self.limit = limit

    def resolve_ip(self, vm_name: str, preset_ip: Optional[str] = None) -> str:
        """Return the VM's IPv4 address, polling the neighbor table until it shows up."""
        if preset_ip:
            log("INFO", f"Using configured address {preset_ip}")
            return preset_ip

        try:
            macs = self.hv.mac_addresses(vm_name)
        except HypervisorError as exc:
            raise LaunchError(FailureCode.NO_IP, str(exc)) from exc
        if not macs:
            raise LaunchError(FailureCode.NO_IP, f"domain {vm_name} has no network interface")
        log("DEBUG", f"Domain {vm_name} MAC addresses: {', '.join(macs)}")

        def _lookup() -> Optional[str]:
            return find_ip(macs, parse_neighbors(read_neighbor_table()))

        def _announce() -> None:
            self.notifier.info(f"Looking for the IP address of the Windows VM '{vm_name}'...")

        ip = poll_until(_lookup, self.interval, self.limit, on_first_wait=_announce)
        if ip is None:
            raise LaunchError(FailureCode.NO_IP, f"no neighbor entry for {', '.join(macs)} after {self.limit}s")
        log("SUCCESS", f"Domain {vm_name} has address {ip}")
        return ip


def check_port(ip: str, port: int, timeout: float = PORT_CHECK_TIMEOUT) -> None:
    """Make a single TCP connection attempt to ``ip:port``."""
    log("DEBUG", f"Probing {ip}:{port} (timeout {timeout}s)")
    try:
        with socket.create_connection((ip, port), timeout=timeout):
            pass
    except OSError as exc:
        raise LaunchError(FailureCode.BAD_PORT, f"{ip}:{port}: {exc}") from exc
    log("SUCCESS", f"Port {port} open on {ip}")
