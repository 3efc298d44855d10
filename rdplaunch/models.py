"""Data models for rdp-vm-launcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class VMState(Enum):
    ABSENT = "absent"
    SHUT_OFF = "shut off"
    PAUSED = "paused"
    RUNNING = "running"
    SHUTTING_DOWN = "in shutdown"
    CRASHED = "crashed"
    DYING = "dying"
    SUSPENDED = "pmsuspended"
    UNKNOWN = "unknown"


class FailureCode(Enum):
    FAIL_START = "FailStart"
    FAIL_RESUME = "FailResume"
    FAIL_DESTROY = "FailDestroy"
    SHUTDOWN_TIMEOUT = "ShutdownTimeout"
    DIE_TIMEOUT = "DieTimeout"
    NOT_EXIST = "NotExist"
    NOT_IN_GROUP = "NotInGroup"
    NO_IP = "NoIP"
    BAD_PORT = "BadPort"
    UNKNOWN_STATE = "UnknownState"
    CLIENT_MISSING = "ClientMissing"


@dataclass
class LaunchConfig:
    vm_name: str
    rdp_port: int
    rdp_user: str
    rdp_password: str
    rdp_domain: Optional[str] = None
    rdp_ip: Optional[str] = None
    rdp_client: str = "xfreerdp"
    rdp_flags: List[str] = field(default_factory=list)
    rdp_scale: int = 100
    required_groups: Tuple[str, ...] = ("libvirt", "kvm")
    notify_enabled: bool = True
