"""
Execution Channels

A channel runs one probe for one target. LocalChannel calls the probe in
process; SSHChannel runs the probe's remote entry point on the target over
paramiko and decodes its JSON output. The collector picks one strategy per
target with ``select_channel``.
"""

import errno
import json
import logging
import shlex
import socket
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import paramiko
from paramiko import SSHClient, SSHConfig

from .errors import ChannelError, ProbeError
from .probes import PROBE_FAILURE_STATUS
from .utils import RuntimeSettings

logger = logging.getLogger("hwinventory.channels")


class ExecutionChannel(ABC):
    """Runs a probe for one target and returns its records."""

    def __init__(self, target: str, settings: RuntimeSettings):
        self.target = target
        self.settings = settings

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} target={self.target}>"

    @abstractmethod
    def invoke(self, probe: Any, raw: bool = False) -> List[Dict[str, Any]]:
        """
        Run ``probe`` for this channel's target.

        Raises:
            ProbeError: If the probe failed on the host
            ChannelError: If the host could not be reached or answered badly
        """
        pass

    def close(self) -> None:
        """Release any connection held by the channel."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class LocalChannel(ExecutionChannel):
    """Runs the probe in the current process."""

    def invoke(self, probe: Any, raw: bool = False) -> List[Dict[str, Any]]:
        logger.debug(f"running {getattr(probe, 'kind', probe)} probe locally for {self.target}")
        return list(probe(raw))


class SSHChannel(ExecutionChannel):
    """
    Runs the probe on a remote host over SSH.

    Authentication is whatever the environment already provides: the SSH
    agent, default keys, or ``~/.ssh/config`` (user, port, identity file,
    proxy command). No password prompt is ever issued.
    """

    def __init__(self, target: str, settings: RuntimeSettings):
        super().__init__(target, settings)
        self.client: Optional[SSHClient] = None
        self._closed = False

    def _ssh_options(self) -> Dict[str, Any]:
        cfg = SSHConfig()
        try:
            with Path("~/.ssh/config").expanduser().open() as fd:
                cfg.parse(fd)
        except OSError as e:
            if e.errno != errno.ENOENT:
                logger.warning(e)
        return cfg.lookup(self.target)

    def connect(self) -> SSHClient:
        """Open the SSH connection if it is not open yet."""
        if self.client is not None:
            return self.client
        if self._closed:
            raise ChannelError(self.target, "cancelled")

        opts = self._ssh_options()
        client = SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        timeout = self.settings.timeout
        try:
            logger.debug(f"connecting to {self.target}:{self.settings.remote_port}")
            client.connect(
                hostname=opts.get("hostname", self.target) if "proxycommand" not in opts else self.target,
                port=int(opts.get("port", self.settings.remote_port)),
                username=self.settings.remote_username or opts.get("user"),
                key_filename=opts.get("identityfile"),
                sock=paramiko.ProxyCommand(opts["proxycommand"]) if "proxycommand" in opts else None,
                timeout=timeout,
                banner_timeout=timeout,
                auth_timeout=timeout,
            )
        except paramiko.AuthenticationException as e:
            client.close()
            raise ChannelError(self.target, f"authentication failed: {e}") from e
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise ChannelError(self.target, f"unreachable: {e}") from e

        # Closed by a timeout or cancellation while the handshake was running
        if self._closed:
            client.close()
            raise ChannelError(self.target, "cancelled")

        self.client = client
        return client

    def build_command(self, probe: Any, raw: bool) -> str:
        return self.settings.remote_command.format(
            kind=shlex.quote(probe.kind),
            raw_flag=" --raw" if raw else "",
        )

    def invoke(self, probe: Any, raw: bool = False) -> List[Dict[str, Any]]:
        client = self.connect()
        command = self.build_command(probe, raw)
        logger.debug(f"{self.target}: {command}")

        try:
            _, stdout, stderr = client.exec_command(command, timeout=self.settings.timeout)
            output = stdout.read()
            errors = stderr.read()
            status = stdout.channel.recv_exit_status()
        except socket.timeout as e:
            raise ChannelError(self.target, "timed out") from e
        except (paramiko.SSHException, OSError, EOFError) as e:
            raise ChannelError(self.target, str(e) or e.__class__.__name__) from e

        error_text = errors.decode("utf-8", "replace").strip()
        if status == PROBE_FAILURE_STATUS:
            raise ProbeError(probe.kind, f"{self.target}: {error_text}")
        if status != 0:
            raise ChannelError(self.target, f"remote command exited with {status}: {error_text}")

        try:
            records = json.loads(output.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise ChannelError(self.target, f"unparsable probe output: {e}") from e
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise ChannelError(self.target, "probe output is not a list of objects")
        return records

    def close(self) -> None:
        self._closed = True
        if self.client is not None:
            try:
                self.client.close()
            finally:
                self.client = None


def select_channel(target: str, settings: RuntimeSettings) -> ExecutionChannel:
    """Choose the execution strategy for one target."""
    if settings.is_local(target):
        return LocalChannel(target, settings)
    return SSHChannel(target, settings)
