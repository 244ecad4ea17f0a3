"""
Inventory Error Taxonomy

Collection errors (InvalidTargetIdentifier, ProbeError, ChannelError) are
isolated per target by the collector. Export errors (InvalidFormat,
PathResolutionError, WriteError) abort the export step and reach the caller.
"""

from typing import Any, Optional


class InventoryError(RuntimeError):
    """Base class for all inventory errors."""

    _message = "Inventory error"

    def __init__(self, value: Any = None, detail: Optional[str] = None):
        self.value = value
        self.detail = detail
        super().__init__(self.message)

    @property
    def message(self) -> str:
        msg = self._message
        if self.value is not None:
            msg += f": {self.value!r}"
        if self.detail:
            msg += f" ({self.detail})"
        return msg

    def __str__(self) -> str:
        return self.message


class InvalidTargetIdentifier(InventoryError, ValueError):
    """Target string does not match the host identifier syntax."""

    _message = "Invalid target identifier"


class ProbeError(InventoryError):
    """A local system API call failed while probing a host."""

    _message = "Probe failed"


class ChannelError(InventoryError):
    """Remote dispatch failed (unreachable, timeout, denied, bad output)."""

    _message = "Remote execution failed"


class InvalidFormat(InventoryError, ValueError):
    """Requested export format is not supported."""

    _message = "Invalid export format"


class PathResolutionError(InventoryError):
    """Resolved export path's parent directory is missing or not writable."""

    _message = "Cannot resolve export path"


class WriteError(InventoryError):
    """I/O failure while writing the export file."""

    _message = "Failed to write export file"
