# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/execution/ssh.py

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

import paramiko

from gluster_provisioner.config.models import ProvisionerConfig
from gluster_provisioner.errors import RemoteCommandError
from gluster_provisioner.utils.retry import RetryError, retry
from gluster_provisioner.utils.ssh_runner import SSHCredentials, SSHRunner, open_ssh
from .runner import BaseCommandRunner

log = logging.getLogger("gluster_provisioner")


class SSHCommandRunner(BaseCommandRunner):
    """
    Runs brick and gluster commands directly on the storage hosts over SSH.

    One connection is opened per run() batch and closed afterwards; nothing
    is kept between provisioning calls.
    """

    label = "ssh"

    def __init__(
        self,
        creds: Optional[SSHCredentials] = None,
        *,
        per_host: Optional[Dict[str, SSHCredentials]] = None,
        sudo: bool = True,
        connect_timeout: float = 20.0,
        cmd_timeout: float = 300.0,
        connect_retries: int = 3,
        connect_delay: float = 2.0,
        connect_backoff: float = 2.0,
        connect: Callable[..., SSHRunner] = open_ssh,
    ):
        self.creds = creds or SSHCredentials()
        self.per_host = per_host or {}
        self.sudo = sudo
        self.connect_timeout = connect_timeout
        self.cmd_timeout = cmd_timeout
        self.connect_retries = connect_retries
        self.connect_delay = connect_delay
        self.connect_backoff = connect_backoff
        self._connect = connect
        self._session: Optional[SSHRunner] = None

    def _open(self, host: str) -> SSHRunner:
        creds = self.per_host.get(host, self.creds)

        def _on_retry(attempt: int, exc: Exception) -> None:
            log.warning("[ssh] connect to %s failed (attempt %d/%d): %s",
                        host, attempt, self.connect_retries, exc)

        @retry(
            retries=self.connect_retries,
            delay=self.connect_delay,
            backoff=self.connect_backoff,
            max_delay=30.0,
            retry_on=(paramiko.SSHException, OSError),
            on_retry=_on_retry,
        )
        def _connect() -> SSHRunner:
            return self._connect(host, creds, connect_timeout=self.connect_timeout)

        return _connect()

    def run(self, host, commands, config) -> None:
        try:
            self._session = self._open(host)
        except RetryError as e:
            raise RemoteCommandError(host, "<ssh connect>", None, str(e.__cause__ or e)) from e
        try:
            super().run(host, commands, config)
        finally:
            self._session.close()
            self._session = None

    def _exec(self, host: str, cmd: str, config: ProvisionerConfig) -> tuple[int, str, str]:
        try:
            return self._session.run(cmd, sudo=self.sudo, timeout=self.cmd_timeout)
        except (paramiko.SSHException, OSError) as e:
            raise RemoteCommandError(host, cmd, None, str(e)) from e
