"""
Motherboard Host Probe

Reads baseboard identification from DMI sysfs on Linux and from
Win32_BaseBoard on Windows.
"""

import sys
from typing import Any, Dict, List

from ..errors import ProbeError
from .base_probe import BaseHostProbe, FieldSpec
from .sources import query_wmi, read_dmi


class MotherboardProbe(BaseHostProbe):
    """
    Motherboard probe.

    Collects:
        - Manufacturer and product name
        - Board version and serial number
        - Chassis vendor and asset tag (Linux)
    """

    kind = "motherboard"
    entity_name = "MotherboardInfo"

    FIELDS = [
        FieldSpec("Manufacturer", "manufacturer"),
        FieldSpec("Product", "product"),
        FieldSpec("Version", "version"),
        FieldSpec("SerialNumber", "serial_number"),
        FieldSpec("AssetTag", "asset_tag"),
        FieldSpec("ChassisVendor", "chassis_vendor"),
    ]

    DMI_ATTRIBUTES = {
        "manufacturer": "board_vendor",
        "product": "board_name",
        "version": "board_version",
        "serial_number": "board_serial",
        "asset_tag": "board_asset_tag",
        "chassis_vendor": "chassis_vendor",
    }

    def read_raw(self) -> List[Dict[str, Any]]:
        if sys.platform == "win32":
            return [
                {
                    "manufacturer": board.get("Manufacturer"),
                    "product": board.get("Product"),
                    "version": board.get("Version"),
                    "serial_number": board.get("SerialNumber"),
                    "asset_tag": board.get("Tag"),
                    "chassis_vendor": None,
                    "wmi": board,
                }
                for board in query_wmi("Win32_BaseBoard")
            ]
        if sys.platform.startswith("linux"):
            dmi = read_dmi(self.DMI_ATTRIBUTES.values())
            return [{key: dmi.get(attr) for key, attr in self.DMI_ATTRIBUTES.items()}]
        raise ProbeError(sys.platform, "motherboard probe not supported on this platform")
