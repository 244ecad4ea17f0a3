"""
Platform Fact Sources

Thin readers shared by the probes: Linux DMI sysfs attributes, Windows WMI
classes and external package-manager commands.
"""

import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..errors import ProbeError

# Windows-only WMI support
HAS_WMI = False
if sys.platform == "win32":
    try:
        import wmi
        import pythoncom
        HAS_WMI = True
    except ImportError:
        pass

DMI_ROOT = Path("/sys/class/dmi/id")


def read_dmi(attributes: Iterable[str], root: Path = DMI_ROOT) -> Dict[str, Optional[str]]:
    """
    Read DMI attributes from sysfs.

    Unreadable attributes (serial numbers need root) map to None.

    Raises:
        ProbeError: If the DMI directory does not exist
    """
    if not root.is_dir():
        raise ProbeError(str(root), "DMI information not available")

    facts: Dict[str, Optional[str]] = {}
    for name in attributes:
        try:
            facts[name] = (root / name).read_text(encoding="utf-8", errors="replace").strip() or None
        except OSError:
            facts[name] = None
    return facts


def query_wmi(class_name: str, namespace: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Return all instances of a WMI class as plain dictionaries.

    Raises:
        ProbeError: If WMI is unavailable or the query fails
    """
    if not HAS_WMI:
        raise ProbeError(class_name, "WMI not available")

    try:
        pythoncom.CoInitialize()
        try:
            conn = wmi.WMI(namespace=namespace) if namespace else wmi.WMI()
            instances = getattr(conn, class_name)()
            return [
                {prop: getattr(item, prop, None) for prop in item.properties}
                for item in instances
            ]
        finally:
            pythoncom.CoUninitialize()
    except ProbeError:
        raise
    except Exception as e:
        raise ProbeError(class_name, str(e)) from e


def run_command(args: List[str], timeout: int = 60) -> str:
    """
    Run a local command and return its stdout.

    Raises:
        ProbeError: If the command is missing, fails or times out
    """
    try:
        completed = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as e:
        raise ProbeError(args[0], "command not found") from e
    except subprocess.TimeoutExpired as e:
        raise ProbeError(args[0], f"timed out after {timeout}s") from e

    if completed.returncode != 0:
        raise ProbeError(args[0], f"exit status {completed.returncode}: {completed.stderr.strip()}")
    return completed.stdout
