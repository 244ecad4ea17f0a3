"""
CPU Host Probe

Identifies the installed processor using py-cpuinfo, with psutil supplying
core counts and frequencies. Falls back to the platform module when
py-cpuinfo is not installed.
"""

import platform
import sys
from typing import Any, Dict, List, Optional

import psutil

try:
    import cpuinfo
    HAS_CPUINFO = True
except ImportError:
    HAS_CPUINFO = False

from .base_probe import BaseHostProbe, FieldSpec, mhz_to_ghz


def _capabilities(raw: Dict[str, Any]) -> Optional[str]:
    flags = [str(f).lower() for f in raw.get("flags") or []]
    found = []
    for flag, label in (("sse4_2", "SSE4"), ("avx", "AVX"), ("avx2", "AVX2"), ("avx512f", "AVX-512")):
        if flag in flags:
            found.append(label)
    return ", ".join(found) or None


class CPUProbe(BaseHostProbe):
    """
    Cross-platform CPU probe.

    Collects:
        - Vendor and model name
        - Physical and logical core counts
        - Base and maximum clock speed
        - Architecture, cache sizes and notable instruction set extensions
    """

    kind = "cpu"
    entity_name = "CPUInfo"

    FIELDS = [
        FieldSpec("Name", "brand_raw"),
        FieldSpec("Manufacturer", "vendor_id_raw"),
        FieldSpec("Architecture", "arch"),
        FieldSpec("Bits", "bits"),
        FieldSpec("PhysicalCores", "physical_cores"),
        FieldSpec("LogicalProcessors", "logical_cores"),
        FieldSpec("BaseClockGHz", "freq_min_mhz", mhz_to_ghz),
        FieldSpec("MaxClockGHz", "freq_max_mhz", mhz_to_ghz),
        FieldSpec("L2Cache", "l2_cache_size"),
        FieldSpec("L3Cache", "l3_cache_size"),
        FieldSpec("Capabilities", _capabilities),
    ]

    def read_raw(self) -> List[Dict[str, Any]]:
        if HAS_CPUINFO:
            info: Dict[str, Any] = dict(cpuinfo.get_cpu_info())
        else:
            info = {
                "brand_raw": platform.processor() or None,
                "vendor_id_raw": None,
                "arch": platform.machine(),
                "bits": 64 if sys.maxsize > 2**32 else 32,
            }

        info["physical_cores"] = psutil.cpu_count(logical=False)
        info["logical_cores"] = psutil.cpu_count(logical=True)

        freq = None
        try:
            freq = psutil.cpu_freq()
        except (NotImplementedError, OSError):
            pass
        # Linux reports min=0 when the scaling driver hides it
        info["freq_min_mhz"] = (freq.min or freq.current) if freq else None
        info["freq_max_mhz"] = (freq.max or freq.current) if freq else None

        return [info]
