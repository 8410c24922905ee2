# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/execution/runner.py

from __future__ import annotations

import logging
import time
from typing import Protocol, Sequence

from gluster_provisioner.config.models import ProvisionerConfig
from gluster_provisioner.errors import RemoteCommandError

log = logging.getLogger("gluster_provisioner")


class CommandRunner(Protocol):
    """
    Contract for running shell commands on one storage host.
    Commands run in order; the first failure raises RemoteCommandError and
    the rest of the batch is not attempted.
    """

    def run(self, host: str, commands: Sequence[str], config: ProvisionerConfig) -> None:
        ...


class BaseCommandRunner:
    """
    Batch loop shared by the transports. Subclasses provide _exec().
    """

    label = "cmd"

    def run(self, host: str, commands: Sequence[str], config: ProvisionerConfig) -> None:
        for cmd in commands:
            log.debug("[%s] (%s) $ %s", self.label, host, cmd)
            start = time.time()
            rc, out, err = self._exec(host, cmd, config)
            duration = time.time() - start

            if out.strip():
                log.debug("[%s] (%s) [stdout]\n%s", self.label, host, out.rstrip())
            if err.strip():
                log.debug("[%s] (%s) [stderr]\n%s", self.label, host, err.rstrip())
            log.debug("[%s] (%s) [exit %s] (%.2fs)", self.label, host, rc, duration)

            if rc != 0:
                raise RemoteCommandError(host, cmd, rc, err or out)

    def _exec(self, host: str, cmd: str, config: ProvisionerConfig) -> tuple[int, str, str]:
        raise NotImplementedError
