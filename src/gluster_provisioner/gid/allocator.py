# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/gid/allocator.py

from __future__ import annotations

import logging
import threading
from typing import Dict, Mapping, Optional, Protocol, Set, Tuple

from gluster_provisioner.errors import AllocatorError, ObjectStoreError
from gluster_provisioner.k8s.client import ObjectStore
from gluster_provisioner.volume.models import ANN_GID, ProvisionRequest, VolumeDescriptor

log = logging.getLogger("gluster_provisioner")

DEFAULT_GID_MIN = 2000
DEFAULT_GID_MAX = 2147483647


class GidAllocator(Protocol):
    def allocate_next(self, request: ProvisionRequest) -> int: ...

    def release(self, descriptor: VolumeDescriptor) -> None: ...


def gid_range(params: Mapping[str, str]) -> Tuple[int, int]:
    """Read gidMin/gidMax (case-insensitive) from storage-class parameters."""
    lo, hi = DEFAULT_GID_MIN, DEFAULT_GID_MAX
    for key, value in (params or {}).items():
        k = key.lower()
        if k not in ("gidmin", "gidmax"):
            continue
        try:
            n = int(str(value).strip())
        except ValueError as e:
            raise AllocatorError(f"{key} must be an integer, got {value!r}") from e
        if k == "gidmin":
            lo = n
        else:
            hi = n
    if lo <= 0 or hi < lo:
        raise AllocatorError(f"invalid gid range [{lo}, {hi}]")
    return lo, hi


class PersistentVolumeGidAllocator:
    """
    Hands out the lowest free GID in the class range.

    Keeps one table of taken GIDs per storage class, seeded from the
    pv.beta.kubernetes.io/gid annotations of existing PVs the first time the
    class is seen. allocate_next marks a GID taken before returning it, so
    two claims provisioned before either PV is written never share a GID;
    release frees it again. Safe to share between threads.
    """

    def __init__(self, store: ObjectStore):
        self.store = store
        self._tables: Dict[Optional[str], Set[int]] = {}
        self._lock = threading.Lock()

    def _seed(self, storage_class: Optional[str]) -> Set[int]:
        try:
            pvs = self.store.list_persistent_volumes()
        except ObjectStoreError as e:
            raise AllocatorError(f"cannot list persistent volumes: {e}") from e

        used: Set[int] = set()
        for pv in pvs:
            if pv.get("storage_class_name") != storage_class:
                continue
            raw = (pv.get("annotations") or {}).get(ANN_GID)
            if raw is None:
                continue
            try:
                used.add(int(raw))
            except ValueError:
                log.warning("PV %s has a non-numeric gid annotation %r", pv.get("name"), raw)
        log.debug("gid table for class %s seeded with %d entries", storage_class, len(used))
        return used

    def _table(self, storage_class: Optional[str]) -> Set[int]:
        # caller holds self._lock
        table = self._tables.get(storage_class)
        if table is None:
            table = self._tables[storage_class] = self._seed(storage_class)
        return table

    def allocate_next(self, request: ProvisionRequest) -> int:
        lo, hi = gid_range(request.parameters)
        with self._lock:
            used = self._table(request.storage_class_name)
            gid = lo
            while gid in used:
                gid += 1
            if gid > hi:
                raise AllocatorError(
                    f"gid range [{lo}, {hi}] exhausted for class {request.storage_class_name}"
                )
            used.add(gid)
        log.debug("allocated gid %d for %s", gid, request.pv_name)
        return gid

    def release(self, descriptor: VolumeDescriptor) -> None:
        raw = descriptor.gid
        if raw is None:
            raise AllocatorError(f"volume {descriptor.name} has no {ANN_GID} annotation")
        try:
            gid = int(raw)
        except ValueError as e:
            raise AllocatorError(f"volume {descriptor.name} has invalid gid {raw!r}") from e

        with self._lock:
            self._table(descriptor.storage_class_name).discard(gid)
        log.debug("released gid %d of %s", gid, descriptor.name)
