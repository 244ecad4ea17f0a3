"""
Base Host Probe Interface

All host probes inherit from BaseHostProbe. A probe reads raw facts about
the current host only and projects them into records through a declarative
list of FieldSpec entries, so each probe only states which output fields it
has and where they come from.
"""

import socket
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from ..errors import ProbeError
from ..records import TARGET_FIELD


@dataclass(frozen=True)
class FieldSpec:
    """
    One output field of a probe.

    ``source`` is either a key in the raw fact mapping or a callable taking
    the whole raw mapping. ``transform`` post-processes a non-None value.
    """
    name: str
    source: Union[str, Callable[[Dict[str, Any]], Any]]
    transform: Optional[Callable[[Any], Any]] = None

    def extract(self, raw: Dict[str, Any]) -> Any:
        try:
            value = self.source(raw) if callable(self.source) else raw.get(self.source)
            if value is not None and self.transform is not None:
                value = self.transform(value)
        except (KeyError, TypeError, ValueError, AttributeError, ZeroDivisionError):
            return None
        if isinstance(value, str):
            value = value.strip() or None
        return value


# Shared transforms
def bytes_to_gb(value: Any) -> float:
    return round(int(value) / (1024**3), 2)


def mhz_to_ghz(value: Any) -> float:
    return round(float(value) / 1000, 2)


class BaseHostProbe(ABC):
    """
    Abstract base class for all host probes.

    Subclasses set ``kind`` (the CLI/remote name), ``entity_name`` (used in
    export file names) and ``FIELDS``, and implement ``read_raw``.

    Example:
        class MyProbe(BaseHostProbe):
            kind = "thing"
            entity_name = "ThingInfo"
            FIELDS = [FieldSpec("Name", "name")]

            def read_raw(self) -> List[Dict[str, Any]]:
                return [{"name": "thing"}]
    """

    kind: str = ""
    entity_name: str = ""
    FIELDS: List[FieldSpec] = []

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}

    @property
    def probe_name(self) -> str:
        """Return the name of this probe."""
        return self.__class__.__name__

    @property
    def field_names(self) -> List[str]:
        return [TARGET_FIELD] + [spec.name for spec in self.FIELDS]

    @abstractmethod
    def read_raw(self) -> List[Dict[str, Any]]:
        """
        Read unprocessed platform facts for the current host.

        Returns:
            One mapping per collected entity (disk, GPU, package, ...)

        Raises:
            ProbeError: If the underlying system API is unavailable
        """
        pass

    def project(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        """Apply FIELDS to one raw mapping; missing values become None."""
        record: Dict[str, Any] = {TARGET_FIELD: self.host_identifier()}
        for spec in self.FIELDS:
            record[spec.name] = spec.extract(raw)
        return record

    def postprocess(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Hook for probe-specific ordering or deduplication."""
        return records

    def collect(self, raw: bool = False) -> List[Dict[str, Any]]:
        """
        Collect facts for the current host.

        Args:
            raw: Return the unprocessed platform facts instead of records

        Returns:
            List of records (or raw mappings in raw mode)

        Raises:
            ProbeError: If the facts cannot be read
        """
        try:
            facts = self.read_raw()
        except ProbeError:
            raise
        except Exception as e:
            raise ProbeError(self.kind, str(e)) from e

        if raw:
            return facts
        return self.postprocess([self.project(item) for item in facts])

    @staticmethod
    def host_identifier() -> str:
        """Identifier of the host the probe is running on."""
        return socket.gethostname()

    def __call__(self, raw: bool = False) -> List[Dict[str, Any]]:
        return self.collect(raw)
