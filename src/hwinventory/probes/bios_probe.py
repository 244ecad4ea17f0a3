"""
BIOS Host Probe

Reads firmware vendor, version and release date from DMI sysfs on Linux
and from Win32_BIOS on Windows.
"""

import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..errors import ProbeError
from .base_probe import BaseHostProbe, FieldSpec
from .sources import query_wmi, read_dmi


def parse_bios_date(value: Any) -> Optional[datetime]:
    """Parse DMI (MM/DD/YYYY) or CIM (YYYYMMDDhhmmss.ffffff+zzz) dates."""
    text = str(value).strip()
    for fmt, length in (("%m/%d/%Y", 10), ("%Y%m%d%H%M%S", 14), ("%Y%m%d", 8)):
        try:
            return datetime.strptime(text[:length], fmt)
        except ValueError:
            continue
    return None


class BIOSProbe(BaseHostProbe):
    """
    BIOS/firmware probe.

    Collects:
        - Vendor and version string
        - Release date
        - System serial number
    """

    kind = "bios"
    entity_name = "BIOSInfo"

    FIELDS = [
        FieldSpec("Manufacturer", "vendor"),
        FieldSpec("Version", "version"),
        FieldSpec("ReleaseDate", "release_date", parse_bios_date),
        FieldSpec("SerialNumber", "serial_number"),
        FieldSpec("SMBIOSVersion", "smbios_version"),
    ]

    DMI_ATTRIBUTES = {
        "vendor": "bios_vendor",
        "version": "bios_version",
        "release_date": "bios_date",
        "serial_number": "product_serial",
        "smbios_version": "bios_release",
    }

    def read_raw(self) -> List[Dict[str, Any]]:
        if sys.platform == "win32":
            return [
                {
                    "vendor": bios.get("Manufacturer"),
                    "version": bios.get("SMBIOSBIOSVersion") or bios.get("Version"),
                    "release_date": bios.get("ReleaseDate"),
                    "serial_number": bios.get("SerialNumber"),
                    "smbios_version": (
                        f"{bios.get('SMBIOSMajorVersion')}.{bios.get('SMBIOSMinorVersion')}"
                        if bios.get("SMBIOSMajorVersion") is not None else None
                    ),
                    "wmi": bios,
                }
                for bios in query_wmi("Win32_BIOS")
            ]
        if sys.platform.startswith("linux"):
            dmi = read_dmi(self.DMI_ATTRIBUTES.values())
            return [{key: dmi.get(attr) for key, attr in self.DMI_ATTRIBUTES.items()}]
        raise ProbeError(sys.platform, "BIOS probe not supported on this platform")
