"""
Pytest Configuration and Fixtures

Provides shared fixtures and configuration for all tests.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hwinventory.channels import ExecutionChannel
from hwinventory.errors import ChannelError, ProbeError
from hwinventory.utils import RuntimeSettings, get_default_config


class FakeProbe:
    """Probe returning canned records per call; raises when told to."""

    kind = "fake"
    entity_name = "FakeInfo"

    def __init__(self, records: List[Dict[str, Any]] = None, error: Exception = None):
        self.records = records if records is not None else [{"Name": "A", "Size": None}]
        self.error = error
        self.calls: List[bool] = []

    def __call__(self, raw: bool = False) -> List[Dict[str, Any]]:
        self.calls.append(raw)
        if self.error is not None:
            raise self.error
        return [dict(r) for r in self.records]


class ScriptedChannel(ExecutionChannel):
    """
    Channel whose behaviour per target comes from a script dictionary.

    A script value is either a list of records, an exception to raise, or a
    callable invoked with the probe.
    """

    def __init__(self, target, settings, script):
        super().__init__(target, settings)
        self.script = script
        self.closed = False

    def invoke(self, probe, raw=False):
        action = self.script.get(self.target, [])
        if isinstance(action, BaseException):
            raise action
        if callable(action):
            return action(probe)
        return [dict(r) for r in action]

    def close(self):
        self.closed = True


@pytest.fixture
def default_config():
    """Provide default configuration."""
    return get_default_config()


@pytest.fixture
def settings(tmp_path):
    """Runtime settings with a fixed local host and a private temp dir."""
    temp_dir = tmp_path / "tmp"
    temp_dir.mkdir()
    return RuntimeSettings(local_host="LOCAL", temp_dir=temp_dir, max_workers=4, timeout=5)


@pytest.fixture
def fake_probe():
    return FakeProbe()


@pytest.fixture
def failing_probe():
    return FakeProbe(error=ProbeError("fake", "system API unavailable"))


@pytest.fixture
def scripted_factory():
    """Build a channel factory from a {target: action} script."""
    created: Dict[str, ScriptedChannel] = {}

    def make(script):
        def factory(target, settings):
            channel = ScriptedChannel(target, settings, script)
            created[target] = channel
            return channel
        factory.created = created
        return factory

    return make


@pytest.fixture
def unreachable():
    return ChannelError("host", "unreachable")


@pytest.fixture
def sample_records():
    """Records with a null, a nested object and strings needing escapes."""
    return [
        {
            "ComputerName": "web01",
            "Name": 'Disk "C", primary',
            "Size": None,
            "Notes": "line one\nline two",
            "Details": {"bus": "SATA", "smart": {"ok": True, "hours": 1234}},
        },
        {
            "ComputerName": "web02",
            "Name": "Disk D",
            "Size": 512.5,
            "Notes": "",
            "Details": {"bus": "NVMe", "smart": {"ok": False, "hours": 10}},
        },
    ]
