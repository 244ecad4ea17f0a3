"""
Operating System Host Probe

Reports OS name, version and uptime using the platform module and psutil.
"""

import platform
import sys
from datetime import datetime
from typing import Any, Dict, List

import psutil

from .base_probe import BaseHostProbe, FieldSpec, bytes_to_gb


def _os_release() -> Dict[str, str]:
    """Parse /etc/os-release on Linux; empty elsewhere."""
    if not sys.platform.startswith("linux"):
        return {}
    try:
        return platform.freedesktop_os_release()
    except OSError:
        return {}


class OSProbe(BaseHostProbe):
    """
    Operating system probe.

    Collects:
        - Distribution or product name and version
        - Kernel/build version and architecture
        - Last boot time
        - Installed physical memory
    """

    kind = "os"
    entity_name = "OSInfo"

    FIELDS = [
        FieldSpec("Caption", lambda raw: raw.get("pretty_name") or f"{raw['system']} {raw['release']}"),
        FieldSpec("Platform", "system"),
        FieldSpec("Version", lambda raw: raw.get("version_id") or raw.get("version")),
        FieldSpec("KernelVersion", "release"),
        FieldSpec("BuildNumber", "version"),
        FieldSpec("Architecture", "machine"),
        FieldSpec("LastBootUpTime", "boot_time", datetime.fromtimestamp),
        FieldSpec("TotalMemoryGB", "memory_total", bytes_to_gb),
    ]

    def read_raw(self) -> List[Dict[str, Any]]:
        uname = platform.uname()
        release = _os_release()
        return [{
            "system": uname.system,
            "node": uname.node,
            "release": uname.release,
            "version": uname.version,
            "machine": uname.machine,
            "pretty_name": release.get("PRETTY_NAME"),
            "version_id": release.get("VERSION_ID"),
            "os_release": release,
            "boot_time": psutil.boot_time(),
            "memory_total": psutil.virtual_memory().total,
        }]
