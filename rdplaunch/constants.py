"""Global constants for rdp-vm-launcher."""

from __future__ import annotations

import os
import re
from pathlib import Path

LIBVIRT_URI = os.environ.get("LIBVIRT_URI", "qemu:///system")
TRUTHY = {"1", "true", "yes", "on"}
IPV4_RE = re.compile(r"^(\d{1,3})\.(\d{1,3})\.(\d{1,3})\.(\d{1,3})$")

DEFAULT_VM_NAME = "RDPWindows"
DEFAULT_RDP_PORT = 3389
DEFAULT_RDP_CLIENT = "xfreerdp"
DEFAULT_REQUIRED_GROUPS = ("libvirt", "kvm")
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "rdplaunch" / "config.yaml"

# Keyword selecting a full desktop session instead of a single application
FULL_DESKTOP_MODES = {"windows", "full-desktop"}

# Polling budgets, in seconds
POLL_INTERVAL = 5
VM_SETTLE_LIMIT = 60
IP_DISCOVERY_LIMIT = 30
PORT_CHECK_TIMEOUT = 10

# sysexits.h
EX_NOHOST = 68
EX_UNAVAILABLE = 69
EX_NOPERM = 77

# Notification expiry in milliseconds, by severity
NOTIFY_EXPIRY = {
    "info": 5000,
    "error": 10000,
}
NOTIFY_URGENCY = {
    "info": "low",
    "error": "critical",
}
NOTIFY_APP_NAME = "rdplaunch"

_LOG_VERBOSE = os.environ.get("LOG_VERBOSE", "").lower() in {"1", "true", "yes", "on"}

_SENSITIVE_FIELDS = {"rdp_password"}
