# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/config/loader.py

import logging
import os
from pathlib import Path
from typing import Dict, List, Mapping

import yaml
from pydantic import ValidationError

from gluster_provisioner.errors import ConfigError
from gluster_provisioner.volume.models import ProvisionRequest
from .models import BrickRoot, ProvisionerConfig

log = logging.getLogger("gluster_provisioner")

KEY_BRICK_ROOT_PATHS = "brickrootpaths"
KEY_VOLUME_TYPE = "volumetype"
KEY_FORCE_CREATE = "forcecreate"
KEY_NAMESPACE = "namespace"
KEY_SELECTOR = "selector"


def parse_brick_roots(value: str) -> List[BrickRoot]:
    """
    Parse "host1:/path1,host2:/path2" into BrickRoot entries, keeping order.
    Blank entries (e.g. a trailing comma) are skipped.
    """
    roots: List[BrickRoot] = []
    for raw in value.split(","):
        pair = raw.strip()
        if not pair:
            continue
        parts = pair.split(":")
        if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
            raise ConfigError(f"invalid brickrootPaths entry {pair!r}, expected host:path")
        try:
            roots.append(BrickRoot(host=parts[0], path=parts[1]))
        except ValidationError as e:
            raise ConfigError(f"invalid brickrootPaths entry {pair!r}: {e}") from e
    return roots


def resolve(pv_name: str, params: Mapping[str, str]) -> ProvisionerConfig:
    """
    Build the ProvisionerConfig for one call from storage-class parameters.

    Keys are matched case-insensitively. Unknown keys are ignored since the
    same parameter map also feeds the GID allocator (gidMin/gidMax).
    """
    values: Dict[str, object] = {"volume_name": pv_name}
    roots: List[BrickRoot] = []
    seen_roots = False

    for key, value in (params or {}).items():
        k = key.lower()
        v = (value or "").strip()
        if k == KEY_BRICK_ROOT_PATHS:
            seen_roots = True
            roots = parse_brick_roots(v)
        elif k == KEY_VOLUME_TYPE:
            values["volume_type"] = v
        elif k == KEY_FORCE_CREATE:
            values["force_create"] = v.lower() == "true"
        elif k == KEY_NAMESPACE:
            values["namespace"] = v
        elif k == KEY_SELECTOR:
            values["selector"] = v
        else:
            log.debug("ignoring storage class parameter %s", key)

    if not seen_roots:
        raise ConfigError("brickrootPaths parameter is required")
    if not roots:
        raise ConfigError("brickrootPaths must name at least one host:path")

    values["brick_roots"] = roots
    try:
        return ProvisionerConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigError(f"parameter is invalid: {e}") from e


def _load_yaml(path: Path) -> dict:
    """Load a YAML mapping, expanding ${ENV_VAR} references."""
    try:
        raw = path.read_text()
        data = yaml.safe_load(os.path.expandvars(raw)) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a YAML mapping")
    return data


def load_manifest(path: str | Path) -> dict:
    """Load a saved PersistentVolume manifest (used by the delete command)."""
    return _load_yaml(Path(path))


def load_request(path: str | Path) -> ProvisionRequest:
    """
    Load a provision request file used by the CLI:

        pv_name: pvc-1234
        namespace: ns1
        claim_name: pvc-a
        capacity: 1Gi
        storage_class_name: glusterfs-simple
        parameters:
          brickrootPaths: "h1:/data,h2:/data"
          volumeType: "replica 2"
    """
    data = _load_yaml(Path(path))
    for required in ("pv_name", "namespace", "claim_name"):
        if not data.get(required):
            raise ConfigError(f"request file {path} is missing {required!r}")

    params = {str(k): str(v) for k, v in (data.get("parameters") or {}).items()}
    kwargs = {
        k: data[k]
        for k in ("capacity", "access_modes", "selector", "storage_class_name", "reclaim_policy")
        if k in data
    }
    return ProvisionRequest(
        pv_name=data["pv_name"],
        namespace=data["namespace"],
        claim_name=data["claim_name"],
        parameters=params,
        **kwargs,
    )
