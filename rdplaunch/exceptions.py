"""Custom exceptions for rdp-vm-launcher."""

from __future__ import annotations

from typing import Optional

from rdplaunch.models import FailureCode


class ConfigError(RuntimeError):
    """Raised on invalid or unreadable configuration."""


class LaunchError(RuntimeError):
    """Raised when a launch stage fails with a mapped failure code."""

    def __init__(self, code: FailureCode, detail: Optional[str] = None) -> None:
        self.code = code
        self.detail = detail
        super().__init__(f"{code.value}: {detail}" if detail else code.value)


class HypervisorError(RuntimeError):
    """Raised when libvirt rejects a domain operation."""
