"""rdp-vm-launcher package."""

__version__ = "1.0.0"

__all__ = [
    "cli",
    "config",
    "constants",
    "exceptions",
    "hypervisor",
    "models",
    "network",
    "notify",
    "preflight",
    "report",
    "session",
    "utils",
    "vm",
]
