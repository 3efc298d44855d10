"""Configuration loading and environment variable parsing for rdp-vm-launcher."""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

from rdplaunch.constants import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_RDP_CLIENT,
    DEFAULT_RDP_PORT,
    DEFAULT_REQUIRED_GROUPS,
    DEFAULT_VM_NAME,
    IPV4_RE,
    TRUTHY,
)
from rdplaunch.exceptions import ConfigError
from rdplaunch.models import LaunchConfig
from rdplaunch.utils import get_env, log, parse_int_env

# Scale factors accepted by FreeRDP's /scale option
SUPPORTED_SCALES = {100, 140, 180}


def load_config_file(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Read the optional YAML settings file; a missing file yields an empty mapping."""
    if config_path is None:
        override = get_env("RDPLAUNCH_CONFIG")
        config_path = Path(override).expanduser() if override else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        log("DEBUG", f"No config file at {config_path}")
        return {}
    try:
        data = yaml.safe_load(config_path.read_text())
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to read config file {config_path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    log("DEBUG", f"Loaded config file {config_path}")
    return {str(key).lower(): value for key, value in data.items()}


def _setting(name: str, file_cfg: Dict[str, Any], default: Optional[str] = None) -> Optional[str]:
    """Environment first, then the config file (lower-case key), then the default."""
    raw = get_env(name)
    if raw is not None:
        return raw
    value = file_cfg.get(name.lower())
    if value is None:
        return default
    return str(value)


def validate_ipv4(raw: str) -> str:
    match = IPV4_RE.match(raw)
    if not match or any(int(octet) > 255 for octet in match.groups()):
        raise ConfigError(f"RDP_IP must be a dotted-quad IPv4 address (got '{raw}')")
    return raw


def parse_env(config_path: Optional[Path] = None) -> LaunchConfig:
    file_cfg = load_config_file(config_path)

    vm_name = (_setting("VM_NAME", file_cfg, DEFAULT_VM_NAME) or "").strip()
    if not vm_name:
        raise ConfigError("VM_NAME must not be empty")

    rdp_port = parse_int_env(
        "RDP_PORT",
        _setting("RDP_PORT", file_cfg, str(DEFAULT_RDP_PORT)) or str(DEFAULT_RDP_PORT),
        min_val=1,
        max_val=65535,
    )

    rdp_user = _setting("RDP_USER", file_cfg, "") or ""
    rdp_password = _setting("RDP_PASS", file_cfg, "") or ""
    if not rdp_user:
        log("WARN", "RDP_USER is not set; the RDP client will prompt for credentials")

    rdp_domain = (_setting("RDP_DOMAIN", file_cfg) or "").strip() or None

    rdp_ip = (_setting("RDP_IP", file_cfg) or "").strip() or None
    if rdp_ip is not None:
        rdp_ip = validate_ipv4(rdp_ip)

    rdp_client = (_setting("RDP_CLIENT", file_cfg, DEFAULT_RDP_CLIENT) or DEFAULT_RDP_CLIENT).strip()

    flags_raw = _setting("RDP_FLAGS", file_cfg, "") or ""
    try:
        rdp_flags = shlex.split(flags_raw)
    except ValueError as exc:
        raise ConfigError(f"RDP_FLAGS could not be parsed: {exc}") from exc

    rdp_scale = parse_int_env("RDP_SCALE", _setting("RDP_SCALE", file_cfg, "100") or "100", min_val=100)
    if rdp_scale not in SUPPORTED_SCALES:
        supported = ", ".join(str(s) for s in sorted(SUPPORTED_SCALES))
        raise ConfigError(f"RDP_SCALE must be one of {supported} (got {rdp_scale})")

    groups_raw = _setting("REQUIRED_GROUPS", file_cfg)
    if groups_raw is None:
        required_groups = DEFAULT_REQUIRED_GROUPS
    else:
        required_groups = tuple(g.strip() for g in groups_raw.split(",") if g.strip())

    notify_raw = _setting("NOTIFY", file_cfg)
    notify_enabled = True if notify_raw is None else notify_raw.lower() in TRUTHY

    return LaunchConfig(
        vm_name=vm_name,
        rdp_port=rdp_port,
        rdp_user=rdp_user,
        rdp_password=rdp_password,
        rdp_domain=rdp_domain,
        rdp_ip=rdp_ip,
        rdp_client=rdp_client,
        rdp_flags=rdp_flags,
        rdp_scale=rdp_scale,
        required_groups=required_groups,
        notify_enabled=notify_enabled,
    )
