"""
Tests for Execution Channels

Covers:
    - Local/remote strategy selection
    - Local in-process invocation
    - SSH connection options, errors and remote exit statuses
"""

import json
import socket
import sys
from io import StringIO
from pathlib import Path
from unittest.mock import MagicMock

import paramiko
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hwinventory.channels import LocalChannel, SSHChannel, select_channel
from hwinventory.errors import ChannelError, ProbeError
from hwinventory.probes import PROBE_FAILURE_STATUS

from conftest import FakeProbe


@pytest.fixture
def mock_ssh_client(monkeypatch):
    """Replace SSHClient inside the channels module."""
    mock_client = MagicMock()
    monkeypatch.setattr("hwinventory.channels.SSHClient", lambda: mock_client)
    return mock_client


@pytest.fixture
def mock_ssh_config(monkeypatch):
    """Replace SSHConfig inside the channels module."""
    mock_config = MagicMock()
    monkeypatch.setattr("hwinventory.channels.SSHConfig", lambda: mock_config)
    mock_config.lookup.return_value = {}
    return mock_config


@pytest.fixture
def mock_path(monkeypatch):
    """Serve an empty ~/.ssh/config."""
    mock_path_instance = MagicMock()
    mock_path_instance.expanduser.return_value.open.return_value.__enter__.return_value = StringIO("")
    monkeypatch.setattr("hwinventory.channels.Path", lambda path: mock_path_instance)
    return mock_path_instance


def remote_reply(client, stdout=b"[]", stderr=b"", status=0):
    """Program the mocked client's exec_command result."""
    out = MagicMock()
    out.read.return_value = stdout
    out.channel.recv_exit_status.return_value = status
    err = MagicMock()
    err.read.return_value = stderr
    client.exec_command.return_value = (MagicMock(), out, err)


class TestSelectChannel:
    """Tests for strategy selection."""

    @pytest.mark.parametrize("target", ["LOCAL", "local", "localhost", "127.0.0.1"])
    def test_local_targets(self, settings, target):
        assert isinstance(select_channel(target, settings), LocalChannel)

    def test_remote_target(self, settings):
        assert isinstance(select_channel("web01", settings), SSHChannel)

    def test_short_name_of_fqdn_is_local(self, settings):
        from dataclasses import replace
        fqdn = replace(settings, local_host="ws1.corp.example")
        assert isinstance(select_channel("WS1", fqdn), LocalChannel)


class TestLocalChannel:
    """Tests for in-process invocation."""

    def test_invoke_calls_probe(self, settings):
        probe = FakeProbe([{"Name": "x"}])
        with LocalChannel("LOCAL", settings) as channel:
            assert channel.invoke(probe, raw=True) == [{"Name": "x"}]
        assert probe.calls == [True]

    def test_probe_error_propagates(self, settings, failing_probe):
        with pytest.raises(ProbeError):
            LocalChannel("LOCAL", settings).invoke(failing_probe)


class TestSSHChannelConnect:
    """Tests for connection setup."""

    def test_connect_uses_environment_auth(self, settings, mock_ssh_client, mock_ssh_config, mock_path):
        """Test connection with agent/default keys and no password."""
        channel = SSHChannel("web01", settings)
        channel.connect()

        mock_ssh_client.load_system_host_keys.assert_called_once()
        mock_ssh_client.set_missing_host_key_policy.assert_called_once()
        mock_ssh_client.connect.assert_called_once_with(
            hostname="web01",
            port=22,
            username=None,
            key_filename=None,
            sock=None,
            timeout=5,
            banner_timeout=5,
            auth_timeout=5,
        )

    def test_connect_honours_ssh_config(self, settings, mock_ssh_client, mock_ssh_config, mock_path):
        mock_ssh_config.lookup.return_value = {
            "hostname": "web01.internal",
            "port": "2222",
            "user": "inventory",
            "identityfile": ["/keys/id_ed25519"],
        }
        SSHChannel("web01", settings).connect()

        kwargs = mock_ssh_client.connect.call_args.kwargs
        assert kwargs["hostname"] == "web01.internal"
        assert kwargs["port"] == 2222
        assert kwargs["username"] == "inventory"
        assert kwargs["key_filename"] == ["/keys/id_ed25519"]

    def test_authentication_failure(self, settings, mock_ssh_client, mock_ssh_config, mock_path):
        mock_ssh_client.connect.side_effect = paramiko.AuthenticationException("denied")
        with pytest.raises(ChannelError, match="authentication failed"):
            SSHChannel("web01", settings).connect()
        mock_ssh_client.close.assert_called_once()

    def test_unreachable_host(self, settings, mock_ssh_client, mock_ssh_config, mock_path):
        mock_ssh_client.connect.side_effect = OSError("No route to host")
        with pytest.raises(ChannelError, match="unreachable"):
            SSHChannel("web01", settings).connect()

    def test_closed_channel_does_not_connect(self, settings, mock_ssh_client, mock_ssh_config, mock_path):
        channel = SSHChannel("web01", settings)
        channel.close()
        with pytest.raises(ChannelError, match="cancelled"):
            channel.connect()
        mock_ssh_client.connect.assert_not_called()

    def test_closed_during_handshake(self, settings, mock_ssh_client, mock_ssh_config, mock_path):
        """A channel closed while connecting never runs the remote command."""
        channel = SSHChannel("web01", settings)
        mock_ssh_client.connect.side_effect = lambda **kwargs: channel.close()
        remote_reply(mock_ssh_client)

        with pytest.raises(ChannelError, match="cancelled"):
            channel.invoke(FakeProbe())

        mock_ssh_client.close.assert_called_once()
        mock_ssh_client.exec_command.assert_not_called()
        assert channel.client is None


class TestSSHChannelInvoke:
    """Tests for remote probe execution."""

    def test_remote_command(self, settings):
        channel = SSHChannel("web01", settings)
        assert channel.build_command(FakeProbe(), raw=False) == "python3 -m hwinventory.probes fake"
        assert channel.build_command(FakeProbe(), raw=True) == "python3 -m hwinventory.probes fake --raw"

    def test_invoke_returns_records(self, settings, mock_ssh_client, mock_ssh_config, mock_path):
        payload = [{"Name": "sda", "SizeGB": 100.0, "Serial": None}]
        remote_reply(mock_ssh_client, stdout=json.dumps(payload).encode())

        records = SSHChannel("web01", settings).invoke(FakeProbe())

        assert records == payload
        mock_ssh_client.exec_command.assert_called_once_with(
            "python3 -m hwinventory.probes fake", timeout=5
        )

    def test_remote_probe_failure(self, settings, mock_ssh_client, mock_ssh_config, mock_path):
        remote_reply(
            mock_ssh_client, stdout=b"", stderr=b"DMI information not available", status=PROBE_FAILURE_STATUS
        )
        with pytest.raises(ProbeError, match="DMI information not available"):
            SSHChannel("web01", settings).invoke(FakeProbe())

    def test_remote_interpreter_error_is_channel_error(self, settings, mock_ssh_client, mock_ssh_config, mock_path):
        """Status 1 from an uncaught exception means the host is not set up, not a failed read."""
        traceback = (
            b"Traceback (most recent call last):\n"
            b'  File "<frozen runpy>", line 189, in _run_module_as_main\n'
            b"ModuleNotFoundError: No module named 'hwinventory'\n"
        )
        remote_reply(mock_ssh_client, stdout=b"", stderr=traceback, status=1)
        with pytest.raises(ChannelError, match="No module named 'hwinventory'"):
            SSHChannel("web01", settings).invoke(FakeProbe())

    def test_remote_command_missing(self, settings, mock_ssh_client, mock_ssh_config, mock_path):
        remote_reply(mock_ssh_client, stdout=b"", stderr=b"python3: command not found", status=127)
        with pytest.raises(ChannelError, match="127"):
            SSHChannel("web01", settings).invoke(FakeProbe())

    def test_unparsable_output(self, settings, mock_ssh_client, mock_ssh_config, mock_path):
        remote_reply(mock_ssh_client, stdout=b"not json")
        with pytest.raises(ChannelError, match="unparsable"):
            SSHChannel("web01", settings).invoke(FakeProbe())

    def test_output_must_be_list_of_objects(self, settings, mock_ssh_client, mock_ssh_config, mock_path):
        remote_reply(mock_ssh_client, stdout=b'{"Name": "x"}')
        with pytest.raises(ChannelError, match="not a list"):
            SSHChannel("web01", settings).invoke(FakeProbe())

    def test_command_timeout(self, settings, mock_ssh_client, mock_ssh_config, mock_path):
        mock_ssh_client.exec_command.side_effect = socket.timeout()
        with pytest.raises(ChannelError, match="timed out"):
            SSHChannel("web01", settings).invoke(FakeProbe())

    def test_close_releases_client(self, settings, mock_ssh_client, mock_ssh_config, mock_path):
        remote_reply(mock_ssh_client)
        with SSHChannel("web01", settings) as channel:
            channel.invoke(FakeProbe())
        mock_ssh_client.close.assert_called_once()
        assert channel.client is None
