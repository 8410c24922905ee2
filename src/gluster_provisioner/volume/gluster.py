# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/volume/gluster.py

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

from gluster_provisioner.config.models import ProvisionerConfig
from gluster_provisioner.errors import ProvisionerError, RemoteCommandError
from gluster_provisioner.execution.runner import CommandRunner
from .models import Brick, TeardownReport

log = logging.getLogger("gluster_provisioner")

GLUSTER = "gluster --mode=script"

# gluster prints "Volume <name> does not exist" for an unknown volume
VOLUME_MISSING = "does not exist"


class ClusterControlEndpoint(Protocol):
    """Picks the host that cluster-wide gluster commands are sent to."""

    def select(self, hosts: Sequence[str]) -> str:
        ...


class FirstHostControlEndpoint:
    def select(self, hosts: Sequence[str]) -> str:
        if not hosts:
            raise ValueError("no hosts to run gluster commands on")
        return hosts[0]


def create_volume_command(bricks: Sequence[Brick], config: ProvisionerConfig) -> str:
    parts = [GLUSTER, "volume", "create", config.volume_name]
    if config.volume_type:
        parts.append(config.volume_type)
    parts.extend(b.spec() for b in bricks)
    if config.force_create:
        parts.append("force")
    return " ".join(parts)


class VolumeLifecycle:
    def __init__(
        self,
        runner: CommandRunner,
        control: Optional[ClusterControlEndpoint] = None,
    ):
        self.runner = runner
        self.control = control or FirstHostControlEndpoint()

    def create_volume(self, bricks: Sequence[Brick], config: ProvisionerConfig) -> None:
        """
        Create and start the volume in one batch on the control host.
        """
        if not bricks:
            raise ValueError("cannot create a gluster volume without bricks")

        cmds = [
            create_volume_command(bricks, config),
            f"{GLUSTER} volume start {config.volume_name}",
        ]
        host = self.control.select([b.host for b in bricks])
        try:
            self.runner.run(host, cmds, config)
        except ProvisionerError:
            log.error("Failed to create gluster volume on %s: %s", host, cmds)
            raise

    def volume_exists(self, host: str, config: ProvisionerConfig) -> bool:
        """
        False only when gluster answers that the volume does not exist. Any
        other failure (glusterd down, no exit code, transport error) is
        raised: the volume state is unknown.
        """
        try:
            self.runner.run(host, [f"{GLUSTER} volume info {config.volume_name}"], config)
        except RemoteCommandError as e:
            if e.returncode is not None and VOLUME_MISSING in (e.stderr or "").lower():
                log.debug("volume info %s on %s: %s", config.volume_name, host, e)
                return False
            raise
        return True

    def delete_volume(
        self,
        namespace: str,
        claim_name: str,
        config: ProvisionerConfig,
        report: Optional[TeardownReport] = None,
    ) -> None:
        """
        Stop (forced) and delete the volume. Never raises.

        A volume that "volume info" cannot find is left alone, so rolling back
        a create that failed before the volume existed sends no stop/delete.
        """
        host = self.control.select(config.hosts)
        name = config.volume_name

        try:
            exists = self.volume_exists(host, config)
        except Exception as e:
            log.error("glusterfs: cannot query volume %s on %s: %s", name, host, e)
            if report is not None:
                report.add("volume", name, e)
            return

        if not exists:
            log.info("gluster volume %s not found on %s, nothing to delete (claim %s/%s)",
                     name, host, namespace, claim_name)
            if report is not None:
                report.add("volume", name)
            return

        try:
            self.runner.run(host, [f"{GLUSTER} volume stop {name} force"], config)
        except Exception as e:
            log.error("glusterfs: failed to stop volume %s: %s", name, e)
            if report is not None:
                report.add("volume", name, e)
            return

        try:
            self.runner.run(host, [f"{GLUSTER} volume delete {name}"], config)
        except Exception as e:
            log.error("glusterfs: failed to delete volume %s: %s", name, e)
            if report is not None:
                report.add("volume", name, e)
            return

        if report is not None:
            report.add("volume", name)
