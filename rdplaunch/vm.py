"""Drive the target VM into the running state."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from rdplaunch.constants import POLL_INTERVAL, VM_SETTLE_LIMIT
from rdplaunch.exceptions import HypervisorError, LaunchError
from rdplaunch.models import FailureCode, VMState
from rdplaunch.notify import Notifier
from rdplaunch.utils import log, poll_until

if TYPE_CHECKING:
    from rdplaunch.hypervisor import Hypervisor


class VMStateMachine:
    """Query the VM once and take the single branch its state calls for.

    States are checked in a fixed order (shut off, paused, then the residual
    states). Transitional states are polled by re-querying libvirt, never by
    waiting on events.
    """

    def __init__(
        self,
        hypervisor: "Hypervisor",
        notifier: Notifier,
        interval: float = POLL_INTERVAL,
        limit: float = VM_SETTLE_LIMIT,
    ) -> None:
        self.hv = hypervisor
        self.notifier = notifier
        self.interval = interval
        self.limit = limit

    def ensure_running(self, vm_name: str) -> None:
        if vm_name not in self.hv.domain_names():
            raise LaunchError(FailureCode.NOT_EXIST, f"no domain named {vm_name}")

        state = self.hv.state(vm_name)
        log("INFO", f"Domain {vm_name} is {state.value}")

        if state is VMState.SHUT_OFF:
            self._start(vm_name)
        elif state is VMState.PAUSED:
            self._resume(vm_name)
        elif state is VMState.RUNNING:
            log("INFO", f"Domain {vm_name} already running")
        elif state is VMState.SHUTTING_DOWN:
            self.notifier.info(f"The Windows VM '{vm_name}' is shutting down. Waiting for it to stop...")
            if not poll_until(lambda: self.hv.state(vm_name) is VMState.SHUT_OFF, self.interval, self.limit):
                raise LaunchError(FailureCode.SHUTDOWN_TIMEOUT)
            self._start(vm_name)
        elif state is VMState.CRASHED:
            self.notifier.info(f"The Windows VM '{vm_name}' crashed. Restarting it...")
            self._restart_crashed(vm_name)
        elif state is VMState.DYING:
            self.notifier.info(f"The Windows VM '{vm_name}' is dying. Waiting for it to stop...")
            settled = poll_until(lambda: self._settled_after_dying(vm_name), self.interval, self.limit)
            if settled is None:
                raise LaunchError(FailureCode.DIE_TIMEOUT)
            if settled is VMState.CRASHED:
                self._restart_crashed(vm_name)
            else:
                self._start(vm_name)
        elif state is VMState.SUSPENDED:
            self.notifier.info(f"The Windows VM '{vm_name}' is suspended. Waking it up...")
            try:
                self.hv.wakeup(vm_name)
            except HypervisorError as exc:
                raise LaunchError(FailureCode.FAIL_RESUME, str(exc)) from exc
            log("SUCCESS", f"Domain {vm_name} woken up")
        elif state is VMState.ABSENT:
            raise LaunchError(FailureCode.NOT_EXIST, f"domain {vm_name} disappeared")
        else:
            raise LaunchError(FailureCode.UNKNOWN_STATE, f"domain {vm_name} reported state {state.value}")

    def _settled_after_dying(self, vm_name: str) -> Optional[VMState]:
        state = self.hv.state(vm_name)
        if state in (VMState.CRASHED, VMState.SHUT_OFF):
            return state
        return None

    def _start(self, vm_name: str) -> None:
        try:
            self.hv.start(vm_name)
        except HypervisorError as exc:
            raise LaunchError(FailureCode.FAIL_START, str(exc)) from exc
        log("SUCCESS", f"Domain {vm_name} started")
        # Domains with a managed save image can come back paused
        if self.hv.state(vm_name) is VMState.PAUSED:
            self._resume(vm_name)

    def _resume(self, vm_name: str) -> None:
        try:
            self.hv.resume(vm_name)
        except HypervisorError as exc:
            raise LaunchError(FailureCode.FAIL_RESUME, str(exc)) from exc
        log("SUCCESS", f"Domain {vm_name} resumed")

    def _restart_crashed(self, vm_name: str) -> None:
        try:
            self.hv.destroy(vm_name)
        except HypervisorError as exc:
            raise LaunchError(FailureCode.FAIL_DESTROY, str(exc)) from exc
        log("INFO", f"Domain {vm_name} destroyed")
        self._start(vm_name)
