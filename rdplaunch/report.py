"""Failure reporting: map failure codes to user messages and exit statuses."""

from __future__ import annotations

from typing import Dict, NamedTuple, Optional

from rdplaunch.constants import EX_NOHOST, EX_NOPERM, EX_UNAVAILABLE
from rdplaunch.models import FailureCode, LaunchConfig
from rdplaunch.notify import Notifier
from rdplaunch.utils import log


class FailureInfo(NamedTuple):
    message: str
    exit_status: int


FAILURES: Dict[FailureCode, FailureInfo] = {
    FailureCode.FAIL_START: FailureInfo("The Windows VM '{vm}' failed to start.", EX_UNAVAILABLE),
    FailureCode.FAIL_RESUME: FailureInfo("The Windows VM '{vm}' failed to resume.", EX_UNAVAILABLE),
    FailureCode.FAIL_DESTROY: FailureInfo("The Windows VM '{vm}' could not be forcefully stopped.", EX_UNAVAILABLE),
    FailureCode.SHUTDOWN_TIMEOUT: FailureInfo(
        "The Windows VM '{vm}' is still shutting down after {limit} seconds.", EX_UNAVAILABLE
    ),
    FailureCode.DIE_TIMEOUT: FailureInfo(
        "The Windows VM '{vm}' is still dying after {limit} seconds.", EX_UNAVAILABLE
    ),
    FailureCode.NOT_EXIST: FailureInfo("The Windows VM '{vm}' does not exist.", EX_UNAVAILABLE),
    FailureCode.NOT_IN_GROUP: FailureInfo(
        "The current user is not a member of the required groups: {groups}.", EX_NOPERM
    ),
    FailureCode.NO_IP: FailureInfo(
        "The IP address of the Windows VM '{vm}' could not be found.\n"
        "Ensure the VM is attached to a libvirt network and has finished booting.\n"
        "Alternatively, set RDP_IP to the address of the VM.",
        EX_NOHOST,
    ),
    FailureCode.BAD_PORT: FailureInfo(
        "The Windows VM '{vm}' is not accepting connections on port {port}.\n"
        "Ensure Remote Desktop is enabled inside Windows and the firewall allows it.\n"
        "The VM may also still be booting; try again in a moment.",
        EX_NOHOST,
    ),
    FailureCode.UNKNOWN_STATE: FailureInfo(
        "The Windows VM '{vm}' is in an unrecognised state and cannot be used.", EX_UNAVAILABLE
    ),
    FailureCode.CLIENT_MISSING: FailureInfo(
        "The RDP client '{client}' is not installed or not on PATH.", EX_UNAVAILABLE
    ),
}


class ErrorReporter:
    def __init__(self, cfg: LaunchConfig, notifier: Notifier, limit: int) -> None:
        self.cfg = cfg
        self.notifier = notifier
        self.limit = limit

    def message_for(self, code: FailureCode) -> str:
        return FAILURES[code].message.format(
            vm=self.cfg.vm_name,
            port=self.cfg.rdp_port,
            limit=self.limit,
            groups=", ".join(self.cfg.required_groups),
            client=self.cfg.rdp_client,
        )

    def report(self, code: FailureCode, detail: Optional[str] = None) -> int:
        """Send exactly one error notification for ``code`` and return its exit status."""
        if detail:
            log("DEBUG", f"{code.value}: {detail}")
        self.notifier.error(self.message_for(code))
        return FAILURES[code].exit_status
