"""CLI entry points for rdp-vm-launcher."""

from __future__ import annotations

import argparse
import dataclasses
import signal
import subprocess
from typing import Dict, List, Optional

from rdplaunch import __version__
from rdplaunch.config import parse_env
from rdplaunch.constants import (
    _SENSITIVE_FIELDS,
    EX_UNAVAILABLE,
    LIBVIRT_URI,
    PORT_CHECK_TIMEOUT,
    VM_SETTLE_LIMIT,
)
from rdplaunch.exceptions import ConfigError, HypervisorError, LaunchError
from rdplaunch.models import LaunchConfig, VMState
from rdplaunch.network import NetworkResolver, check_port, find_ip, parse_neighbors, read_neighbor_table
from rdplaunch.notify import Notifier
from rdplaunch.preflight import check_groups
from rdplaunch.report import ErrorReporter
from rdplaunch.session import SessionLauncher
from rdplaunch.utils import log
from rdplaunch.vm import VMStateMachine

# Signals that end the run through the normal cleanup path
_EXIT_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


def open_hypervisor(uri: str = LIBVIRT_URI):
    from rdplaunch.hypervisor import Hypervisor

    hypervisor = Hypervisor(uri)
    hypervisor.connect()
    return hypervisor


def show_config(cfg: LaunchConfig) -> None:
    """Print the resolved launcher configuration and exit."""
    for field in dataclasses.fields(cfg):
        value = getattr(cfg, field.name)
        if field.name in _SENSITIVE_FIELDS and value:
            print(f"  {field.name}: ********")
        else:
            print(f"  {field.name}: {value}")


def dry_run(cfg: LaunchConfig, hypervisor) -> int:
    """Report what a real run would find without changing anything."""
    if cfg.vm_name not in hypervisor.domain_names():
        log("ERROR", f"Domain:  {cfg.vm_name} (NOT FOUND)")
        return EX_UNAVAILABLE
    state = hypervisor.state(cfg.vm_name)
    log("INFO", f"Domain:  {cfg.vm_name} ({state.value})")
    if cfg.rdp_ip:
        ip: Optional[str] = cfg.rdp_ip
        log("INFO", f"Address: {ip} (configured)")
    elif state is VMState.RUNNING:
        ip = find_ip(hypervisor.mac_addresses(cfg.vm_name), parse_neighbors(read_neighbor_table()))
        log("INFO" if ip else "WARN", f"Address: {ip or 'not in neighbor table'}")
    else:
        ip = None
        log("INFO", "Address: unknown (VM not running)")
    if ip:
        try:
            check_port(ip, cfg.rdp_port)
        except LaunchError:
            log("WARN", f"Port:    {cfg.rdp_port} closed on {ip}")
        else:
            log("SUCCESS", f"Port:    {cfg.rdp_port} open on {ip}")
    log("INFO", "=== Dry-run complete (nothing started) ===")
    return 0


def _raise_exit(signum, frame):
    sig_name = signal.Signals(signum).name
    log("INFO", f"{sig_name} received, exiting")
    raise SystemExit(128 + signum)


def _install_exit_handlers() -> Dict[int, object]:
    return {signum: signal.signal(signum, _raise_exit) for signum in _EXIT_SIGNALS}


def _ignore_exit_signals() -> None:
    for signum in _EXIT_SIGNALS:
        signal.signal(signum, signal.SIG_IGN)


def _restore_handlers(previous: Dict[int, object]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Start a libvirt VM and connect to it over RDP")
    parser.add_argument(
        "mode",
        nargs="?",
        default=None,
        help="'windows' (or 'full-desktop') for a full desktop, otherwise the remote application to run",
    )
    parser.add_argument("--show-config", action="store_true", help="Show resolved configuration and exit")
    parser.add_argument("--dry-run", action="store_true", help="Report VM, address and port status without changes")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)

    try:
        cfg = parse_env()
    except ConfigError as exc:
        log("ERROR", str(exc))
        return 1

    if args.show_config:
        show_config(cfg)
        return 0

    notifier = Notifier(enabled=cfg.notify_enabled)
    reporter = ErrorReporter(cfg, notifier, limit=VM_SETTLE_LIMIT)
    launcher = SessionLauncher(cfg)
    hypervisor = None
    previous_handlers = _install_exit_handlers()
    try:
        check_groups(cfg.required_groups)
        hypervisor = open_hypervisor()
        if args.dry_run:
            return dry_run(cfg, hypervisor)

        VMStateMachine(hypervisor, notifier).ensure_running(cfg.vm_name)
        ip = NetworkResolver(hypervisor, notifier).resolve_ip(cfg.vm_name, preset_ip=cfg.rdp_ip)
        log("INFO", f"Checking RDP port {cfg.rdp_port} on {ip} (timeout {PORT_CHECK_TIMEOUT}s)")
        check_port(ip, cfg.rdp_port)

        if launcher.launch(args.mode, ip) is not None:
            retcode = launcher.wait()
            log("INFO", f"RDP client exited with status {retcode}")
        return 0
    except LaunchError as exc:
        return reporter.report(exc.code, exc.detail)
    except subprocess.CalledProcessError as exc:
        log("ERROR", f"Command failed ({exc.returncode}): {' '.join(exc.cmd)}")
        return exc.returncode
    except (ConfigError, HypervisorError) as exc:
        log("ERROR", str(exc))
        return 1
    except KeyboardInterrupt:
        log("INFO", "Interrupted")
        return 130
    except Exception as exc:
        log("ERROR", f"Unexpected error: {exc}")
        import traceback

        traceback.print_exc()
        return 1
    finally:
        # cleanup must not be cut short by a second SIGTERM or SIGHUP
        _ignore_exit_signals()
        launcher.release()
        if hypervisor is not None:
            hypervisor.close()
        _restore_handlers(previous_handlers)
