# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/volume/bricks.py

from __future__ import annotations

import logging
import posixpath
import shlex
from typing import List, Optional

from gluster_provisioner.config.models import BrickRoot, ProvisionerConfig
from gluster_provisioner.execution.runner import CommandRunner
from .models import Brick, TeardownReport

log = logging.getLogger("gluster_provisioner")

BRICK_MODE = "0771"


def brick_name(claim_name: str, volume_name: str) -> str:
    return f"{claim_name}-{volume_name}"


def derive_brick_path(root: BrickRoot, namespace: str, claim_name: str, volume_name: str) -> str:
    """
    <root>/<namespace>/<claim>-<volume>. Delete relies on getting the exact
    same string back from the same inputs; the path is never stored.
    """
    return posixpath.join(root.path, namespace, brick_name(claim_name, volume_name))


class BrickProvisioner:
    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def bricks_for(self, namespace: str, claim_name: str, config: ProvisionerConfig) -> List[Brick]:
        return [
            Brick(host=root.host, path=derive_brick_path(root, namespace, claim_name, config.volume_name))
            for root in config.brick_roots
        ]

    def create_bricks(
        self,
        namespace: str,
        claim_name: str,
        config: ProvisionerConfig,
        gid: int,
    ) -> List[Brick]:
        """
        Create one brick directory per brick root, in root order. Stops at the
        first failing host; cleaning up earlier hosts is the caller's job.
        """
        bricks = self.bricks_for(namespace, claim_name, config)
        for brick in bricks:
            path = shlex.quote(brick.path)
            log.info("mkdir -p %s:%s", brick.host, brick.path)
            self.runner.run(
                brick.host,
                [
                    f"mkdir -p {path}",
                    f"chown :{gid} {path}",
                    f"chmod {BRICK_MODE} {path}",
                ],
                config,
            )
        return bricks

    def delete_bricks(
        self,
        namespace: str,
        claim_name: str,
        config: ProvisionerConfig,
        report: Optional[TeardownReport] = None,
    ) -> None:
        """Remove every brick directory; a failing host never stops the others."""
        for brick in self.bricks_for(namespace, claim_name, config):
            log.info("rm -rf %s:%s", brick.host, brick.path)
            try:
                self.runner.run(brick.host, [f"rm -rf {shlex.quote(brick.path)}"], config)
            except Exception as e:
                log.error("Failed to delete brick %s:%s: %s", brick.host, brick.path, e)
                if report is not None:
                    report.add("brick", brick.spec(), e)
                continue
            if report is not None:
                report.add("brick", brick.spec())
