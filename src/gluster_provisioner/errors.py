# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/errors.py
from __future__ import annotations

from typing import Optional

from gluster_provisioner.volume.state import ProvisioningState


class ProvisionerError(RuntimeError):
    """Base class for provisioning/deprovisioning failures."""

    # This core never asks the controller to retry: it rolls back itself.
    state: ProvisioningState = ProvisioningState.FINISHED


class ConfigError(ProvisionerError):
    """Raised when storage-class parameters are missing or malformed."""


class UnsupportedRequestError(ProvisionerError):
    """Raised for claims this provisioner refuses outright (e.g. selectors)."""


class AllocatorError(ProvisionerError):
    """Raised when a GID cannot be allocated or released."""


class RemoteCommandError(ProvisionerError):
    def __init__(
        self,
        host: str,
        command: str,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        self.host = host
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = (stderr or "").strip() or "no output"
        super().__init__(
            f"command failed on {host} (rc={returncode}): {command}: {detail}"
        )


class ObjectStoreError(ProvisionerError):
    def __init__(self, kind: str, namespace: str, name: str, reason: str):
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.reason = reason
        super().__init__(f"{kind} {namespace}/{name}: {reason}")


class AlreadyExistsError(ObjectStoreError):
    """The object is already present; callers creating idempotently ignore it."""
