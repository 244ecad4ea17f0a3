"""
Disk/Storage Host Probe

Lists mounted storage volumes with capacity and usage via psutil. One
record is produced per volume.
"""

from typing import Any, Dict, List

import psutil

from .base_probe import BaseHostProbe, FieldSpec, bytes_to_gb

# Pseudo and virtual filesystems that never represent a disk
SKIP_FSTYPES = {"squashfs", "tmpfs", "devtmpfs", "overlay", "proc", "sysfs"}


class DiskProbe(BaseHostProbe):
    """
    Disk/Storage probe.

    Collects per mounted volume:
        - Device and mount point
        - Filesystem type and mount options
        - Total, used and free size in GB, and percent used
    """

    kind = "disk"
    entity_name = "DiskInfo"

    FIELDS = [
        FieldSpec("Device", "device"),
        FieldSpec("MountPoint", "mountpoint"),
        FieldSpec("FileSystem", "fstype"),
        FieldSpec("Options", "opts"),
        FieldSpec("SizeGB", "total", bytes_to_gb),
        FieldSpec("UsedGB", "used", bytes_to_gb),
        FieldSpec("FreeGB", "free", bytes_to_gb),
        FieldSpec("PercentUsed", "percent"),
    ]

    def read_raw(self) -> List[Dict[str, Any]]:
        volumes = []
        for partition in psutil.disk_partitions(all=False):
            if partition.fstype in SKIP_FSTYPES or partition.device.startswith("/dev/loop"):
                continue

            facts: Dict[str, Any] = {
                "device": partition.device,
                "mountpoint": partition.mountpoint,
                "fstype": partition.fstype,
                "opts": partition.opts,
                "total": None,
                "used": None,
                "free": None,
                "percent": None,
            }
            try:
                usage = psutil.disk_usage(partition.mountpoint)
                facts.update(
                    total=usage.total,
                    used=usage.used,
                    free=usage.free,
                    percent=usage.percent,
                )
            except (PermissionError, OSError):
                # Empty card readers and locked volumes still get a record
                pass
            volumes.append(facts)
        return volumes
