"""
GPU Host Probe

Enumerates display adapters. Windows hosts are read from
Win32_VideoController; elsewhere NVIDIA GPUs are read through pynvml, with
GPUtil as a fallback when NVML bindings cannot be initialised.
"""

import logging
import sys
from typing import Any, Dict, List

try:
    import pynvml
    HAS_PYNVML = True
except ImportError:
    HAS_PYNVML = False

try:
    import GPUtil
    HAS_GPUTIL = True
except ImportError:
    HAS_GPUTIL = False

from ..errors import ProbeError
from .base_probe import BaseHostProbe, FieldSpec
from .sources import query_wmi

logger = logging.getLogger("hwinventory.probes.gpu")


def _decode(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def _bytes_to_mb(value: Any) -> int:
    return int(value) // (1024**2)


class GPUProbe(BaseHostProbe):
    """
    GPU probe.

    Collects per adapter:
        - Name and vendor
        - Video memory in MB
        - Driver version
        - Bus/device identifier
    """

    kind = "gpu"
    entity_name = "GPUInfo"

    FIELDS = [
        FieldSpec("Name", "name"),
        FieldSpec("Vendor", "vendor"),
        FieldSpec("MemoryMB", "memory_bytes", _bytes_to_mb),
        FieldSpec("DriverVersion", "driver_version"),
        FieldSpec("DeviceID", "device_id"),
    ]

    def read_raw(self) -> List[Dict[str, Any]]:
        if sys.platform == "win32":
            return self._read_wmi()

        if HAS_PYNVML:
            try:
                return self._read_nvml()
            except pynvml.NVMLError as e:
                logger.debug(f"NVML unavailable: {e}")

        if HAS_GPUTIL:
            return self._read_gputil()

        raise ProbeError("gpu", "no GPU information source available")

    def _read_wmi(self) -> List[Dict[str, Any]]:
        adapters = []
        for controller in query_wmi("Win32_VideoController"):
            ram = controller.get("AdapterRAM")
            adapters.append({
                "name": controller.get("Name"),
                "vendor": controller.get("AdapterCompatibility"),
                # AdapterRAM is a signed 32-bit field; negative means unknown
                "memory_bytes": ram if isinstance(ram, int) and ram > 0 else None,
                "driver_version": controller.get("DriverVersion"),
                "device_id": controller.get("PNPDeviceID"),
                "wmi": controller,
            })
        return adapters

    def _read_nvml(self) -> List[Dict[str, Any]]:
        pynvml.nvmlInit()
        try:
            driver_version = _decode(pynvml.nvmlSystemGetDriverVersion())
            gpus = []
            for index in range(pynvml.nvmlDeviceGetCount()):
                handle = pynvml.nvmlDeviceGetHandleByIndex(index)
                mem = pynvml.nvmlDeviceGetMemoryInfo(handle)
                try:
                    bus_id = _decode(pynvml.nvmlDeviceGetPciInfo(handle).busId)
                except pynvml.NVMLError:
                    bus_id = None
                gpus.append({
                    "index": index,
                    "name": _decode(pynvml.nvmlDeviceGetName(handle)),
                    "vendor": "NVIDIA",
                    "memory_bytes": mem.total,
                    "driver_version": driver_version,
                    "device_id": bus_id,
                })
            return gpus
        finally:
            try:
                pynvml.nvmlShutdown()
            except pynvml.NVMLError:
                pass

    def _read_gputil(self) -> List[Dict[str, Any]]:
        try:
            devices = GPUtil.getGPUs()
        except Exception as e:
            raise ProbeError("gpu", str(e)) from e
        return [
            {
                "index": gpu.id,
                "name": gpu.name,
                "vendor": "NVIDIA",
                "memory_bytes": int(gpu.memoryTotal * 1024**2) if gpu.memoryTotal else None,
                "driver_version": gpu.driver,
                "device_id": gpu.uuid,
            }
            for gpu in devices
        ]
