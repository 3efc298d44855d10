"""RDP client process management for rdp-vm-launcher."""

from __future__ import annotations

import shutil
import subprocess
from typing import List, Optional

from rdplaunch.constants import FULL_DESKTOP_MODES
from rdplaunch.exceptions import LaunchError
from rdplaunch.models import FailureCode, LaunchConfig
from rdplaunch.utils import log


class SessionLauncher:
    """Spawn the RDP client and own its process handle until release()."""

    def __init__(self, cfg: LaunchConfig) -> None:
        self.cfg = cfg
        self.process: Optional[subprocess.Popen] = None

    def build_command(self, ip: str, app: Optional[str] = None) -> List[str]:
        cmd = [self.cfg.rdp_client]
        if self.cfg.rdp_domain:
            cmd.append(f"/d:{self.cfg.rdp_domain}")
        cmd += [
            f"/u:{self.cfg.rdp_user}",
            f"/p:{self.cfg.rdp_password}",
            f"/v:{ip}:{self.cfg.rdp_port}",
            "+clipboard",
            "/dynamic-resolution",
            "-wallpaper",
            "/cert:ignore",
        ]
        if self.cfg.rdp_scale != 100:
            cmd.append(f"/scale:{self.cfg.rdp_scale}")
        if app is None:
            cmd.append(f"/t:{self.cfg.vm_name} {ip}")
        else:
            cmd += [
                f"/wm-class:{app}",
                f"/app:program:{app}",
            ]
        cmd += self.cfg.rdp_flags
        return cmd

    def launch(self, mode: Optional[str], ip: str) -> Optional[subprocess.Popen]:
        """Start a full desktop (``mode`` in FULL_DESKTOP_MODES) or a single remote application.

        Without a mode nothing is launched.
        """
        if not mode:
            log("DEBUG", "No session mode given; nothing to launch")
            return None
        if shutil.which(self.cfg.rdp_client) is None:
            raise LaunchError(FailureCode.CLIENT_MISSING, self.cfg.rdp_client)

        app = None if mode.lower() in FULL_DESKTOP_MODES else mode
        cmd = self.build_command(ip, app)
        masked = [f"/p:{'*' * 8}" if arg.startswith("/p:") else arg for arg in cmd]
        log("DEBUG", f"Running: {' '.join(masked)}")
        try:
            self.process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as exc:
            raise LaunchError(FailureCode.CLIENT_MISSING, str(exc)) from exc
        target = "full desktop" if app is None else f"application {app}"
        log("SUCCESS", f"Launched {target} on {ip} (PID {self.process.pid})")
        return self.process

    def wait(self) -> Optional[int]:
        if self.process is None:
            return None
        return self.process.wait()

    def release(self) -> None:
        """Force-kill the client if one was spawned; safe to call when none was."""
        process = self.process
        if process is None:
            return
        log("INFO", f"Terminating RDP client (PID {process.pid})")
        try:
            process.kill()
            process.wait(timeout=5)
        except (subprocess.TimeoutExpired, OSError):
            log("WARN", f"RDP client (PID {process.pid}) did not exit after SIGKILL")
        # the handle is dropped only once kill() has been issued
        self.process = None
