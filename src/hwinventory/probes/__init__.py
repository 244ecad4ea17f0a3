"""
Host Probes Module

Each probe reads facts about the current host only and projects them into
records through a declarative field list. Contributors can add a new kind
by subclassing BaseHostProbe and registering it in PROBES.

Available Probes:
    - motherboard: Baseboard identification
    - disk: Mounted volumes and usage
    - os: Operating system and uptime
    - cpu: Processor identification
    - bios: Firmware vendor, version and date
    - gpu: Display adapters
    - software: Installed packages
"""

from typing import Dict, Type

# Exit status of the remote entry point when a probe fails on the host.
# Distinct from 1, which an interpreter uses for any uncaught exception.
PROBE_FAILURE_STATUS = 3

from .base_probe import BaseHostProbe, FieldSpec
from .bios_probe import BIOSProbe
from .cpu_probe import CPUProbe
from .disk_probe import DiskProbe
from .gpu_probe import GPUProbe
from .motherboard_probe import MotherboardProbe
from .os_probe import OSProbe
from .software_probe import SoftwareProbe

PROBES: Dict[str, Type[BaseHostProbe]] = {
    probe.kind: probe
    for probe in (
        MotherboardProbe,
        DiskProbe,
        OSProbe,
        CPUProbe,
        BIOSProbe,
        GPUProbe,
        SoftwareProbe,
    )
}


def get_probe(kind: str, config=None) -> BaseHostProbe:
    """
    Instantiate the probe registered for ``kind``.

    Raises:
        KeyError: If no probe is registered under that name
    """
    try:
        probe_class = PROBES[kind.lower()]
    except KeyError:
        raise KeyError(f"Unknown probe kind: {kind!r}. Choose from {', '.join(PROBES)}") from None
    return probe_class(config)


__all__ = [
    "BaseHostProbe",
    "FieldSpec",
    "BIOSProbe",
    "CPUProbe",
    "DiskProbe",
    "GPUProbe",
    "MotherboardProbe",
    "OSProbe",
    "SoftwareProbe",
    "PROBES",
    "PROBE_FAILURE_STATUS",
    "get_probe",
]
