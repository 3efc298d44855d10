"""Privilege checks run before touching libvirt."""

from __future__ import annotations

import grp
import os
from typing import Iterable, List, Set

from rdplaunch.exceptions import LaunchError
from rdplaunch.models import FailureCode
from rdplaunch.utils import log


def current_group_names() -> Set[str]:
    """Names of the groups this process is running with (primary and supplementary)."""
    names = set()
    for gid in set(os.getgroups()) | {os.getegid()}:
        try:
            names.add(grp.getgrgid(gid).gr_name)
        except KeyError:
            continue
    return names


def missing_groups(required: Iterable[str]) -> List[str]:
    have = current_group_names()
    return [group for group in required if group not in have]


def check_groups(required: Iterable[str]) -> None:
    required = list(required)
    if not required:
        return
    missing = missing_groups(required)
    if missing:
        raise LaunchError(FailureCode.NOT_IN_GROUP, f"missing groups: {', '.join(missing)}")
    log("DEBUG", f"Group membership OK ({', '.join(required)})")
