# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/config/models.py

import posixpath
import re
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

VOLUME_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class BrickRoot(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str
    path: str

    @field_validator("host")
    @classmethod
    def _host_not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("brick root host is empty")
        return v

    @field_validator("path")
    @classmethod
    def _path_absolute(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith("/"):
            raise ValueError(f"brick root path must be absolute: {v!r}")
        return posixpath.normpath(v)


class ProvisionerConfig(BaseModel):
    """Parsed storage-class parameters for one provision/delete call."""

    model_config = ConfigDict(frozen=True)

    brick_roots: List[BrickRoot] = Field(min_length=1)
    volume_name: str
    volume_type: str = ""             # opaque to us, e.g. "replica 2"
    force_create: bool = False

    # Where the gluster server pods live (pod-exec transport)
    namespace: str = "default"
    selector: str = "glusterfs-node=pod"

    @field_validator("volume_name")
    @classmethod
    def _volume_name_safe(cls, v: str) -> str:
        if not VOLUME_NAME_RE.match(v or ""):
            raise ValueError(f"volume name is not safe for gluster/filesystem use: {v!r}")
        return v

    @property
    def hosts(self) -> List[str]:
        return [r.host for r in self.brick_roots]
