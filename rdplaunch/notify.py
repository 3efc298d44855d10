"""Desktop notifications for rdp-vm-launcher."""

from __future__ import annotations

import subprocess

from rdplaunch.constants import NOTIFY_APP_NAME, NOTIFY_EXPIRY, NOTIFY_URGENCY
from rdplaunch.utils import log

NOTIFY_COMMAND = "notify-send"
NOTIFY_TITLE = "RDP Launcher"


class Notifier:
    """Send short status messages to the desktop via notify-send."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def notify(self, message: str, severity: str = "info") -> None:
        """Fire-and-forget notification; delivery failures are only logged."""
        log("ERROR" if severity == "error" else "INFO", message)
        if not self.enabled:
            return
        cmd = [
            NOTIFY_COMMAND,
            f"--expire-time={NOTIFY_EXPIRY[severity]}",
            f"--urgency={NOTIFY_URGENCY[severity]}",
            f"--app-name={NOTIFY_APP_NAME}",
            NOTIFY_TITLE,
            message,
        ]
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except OSError as exc:
            log("DEBUG", f"Notification not delivered: {exc}")
            return
        if result.returncode != 0:
            log("DEBUG", f"{NOTIFY_COMMAND} exited with status {result.returncode}")

    def info(self, message: str) -> None:
        self.notify(message, "info")

    def error(self, message: str) -> None:
        self.notify(message, "error")
