"""
Installed Software Host Probe

Lists installed packages: the registry uninstall keys on Windows, dpkg or
rpm on Linux. Results are deduplicated by name and sorted.
"""

import shutil
import sys
from typing import Any, Dict, List

from ..errors import ProbeError
from .base_probe import BaseHostProbe, FieldSpec
from .sources import run_command

if sys.platform == "win32":
    import winreg

UNINSTALL_KEYS = [
    r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall",
    r"SOFTWARE\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall",
]

DPKG_FORMAT = "${Package}\t${Version}\t${Maintainer}\t${Installed-Size}\t${db:Status-Abbrev}\n"
RPM_FORMAT = "%{NAME}\t%{VERSION}-%{RELEASE}\t%{VENDOR}\t%{SIZE}\t%{INSTALLTIME}\n"


def parse_package_lines(output: str, size_unit: int = 1) -> List[Dict[str, Any]]:
    """Parse tab separated name/version/vendor/size[/extra] package lines."""
    packages = []
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) < 2 or not parts[0].strip():
            continue
        parts += [""] * (5 - len(parts))
        name, version, vendor, size, extra = parts[:5]
        # dpkg lists removed-but-configured packages too
        if extra.strip() and not extra.startswith(("ii", "hi")) and not extra.strip().isdigit():
            continue
        try:
            size_kb = int(size) * size_unit // 1024 if size.strip() else None
        except ValueError:
            size_kb = None
        packages.append({
            "name": name.strip(),
            "version": version.strip() or None,
            "publisher": vendor.strip() if vendor.strip() not in ("", "(none)") else None,
            "size_kb": size_kb,
        })
    return packages


class SoftwareProbe(BaseHostProbe):
    """
    Installed software probe.

    Collects per package:
        - Display name and version
        - Publisher
        - Install date (Windows) and size in KB
    """

    kind = "software"
    entity_name = "InstalledSoftware"

    FIELDS = [
        FieldSpec("Name", "name"),
        FieldSpec("Version", "version"),
        FieldSpec("Publisher", "publisher"),
        FieldSpec("InstallDate", "install_date"),
        FieldSpec("SizeKB", "size_kb"),
    ]

    def read_raw(self) -> List[Dict[str, Any]]:
        if sys.platform == "win32":
            return self._read_registry()
        if sys.platform.startswith("linux"):
            if shutil.which("dpkg-query"):
                # Installed-Size is already in KiB
                return parse_package_lines(
                    run_command(["dpkg-query", "-W", "-f", DPKG_FORMAT]), size_unit=1024
                )
            if shutil.which("rpm"):
                return parse_package_lines(run_command(["rpm", "-qa", "--qf", RPM_FORMAT]))
            raise ProbeError("software", "no supported package manager found")
        raise ProbeError(sys.platform, "software probe not supported on this platform")

    def _read_registry(self) -> List[Dict[str, Any]]:
        packages = []
        for hive in (winreg.HKEY_LOCAL_MACHINE, winreg.HKEY_CURRENT_USER):
            for key_path in UNINSTALL_KEYS:
                try:
                    key = winreg.OpenKey(hive, key_path)
                except OSError:
                    continue
                with key:
                    for index in range(winreg.QueryInfoKey(key)[0]):
                        try:
                            with winreg.OpenKey(key, winreg.EnumKey(key, index)) as sub:
                                entry = self._registry_entry(sub)
                        except OSError:
                            continue
                        if entry.get("name"):
                            packages.append(entry)
        return packages

    @staticmethod
    def _registry_entry(key) -> Dict[str, Any]:
        def value(name: str) -> Any:
            try:
                return winreg.QueryValueEx(key, name)[0]
            except OSError:
                return None

        return {
            "name": value("DisplayName"),
            "version": value("DisplayVersion"),
            "publisher": value("Publisher"),
            "install_date": value("InstallDate"),
            "size_kb": value("EstimatedSize"),
        }

    def postprocess(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Keep the first entry per name (case-insensitive), sorted by name."""
        unique: Dict[str, Dict[str, Any]] = {}
        for record in records:
            name = record.get("Name")
            if not name:
                continue
            unique.setdefault(name.lower(), record)
        return sorted(unique.values(), key=lambda r: r["Name"].lower())
