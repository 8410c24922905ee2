# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/volume/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

ANN_CREATED_BY = "kubernetes.io/createdby"
CREATED_BY = "glusterfs-simple-provisioner"
ANN_GID = "pv.beta.kubernetes.io/gid"
ANN_STORAGE_CLASS = "volume.beta.kubernetes.io/storage-class"
EXPOSURE_PREFIX = "glusterfs-simple-"
LABEL_PROVISIONED_FOR = "gluster.kubernetes.io/provisioned-for-pvc"


def exposure_name(claim_name: str) -> str:
    return EXPOSURE_PREFIX + claim_name


@dataclass
class ProvisionRequest:
    """
    One inbound create call from the provisioning controller.
    """
    pv_name: str                      # volume name picked by the controller
    namespace: str                    # claim namespace
    claim_name: str
    capacity: str = "1Gi"
    access_modes: List[str] = field(default_factory=lambda: ["ReadWriteMany"])
    selector: Optional[Dict[str, Any]] = None   # unsupported, must stay None
    parameters: Dict[str, str] = field(default_factory=dict)
    storage_class_name: Optional[str] = None
    reclaim_policy: str = "Delete"


@dataclass(frozen=True)
class Brick:
    host: str
    path: str

    def spec(self) -> str:
        return f"{self.host}:{self.path}"


@dataclass(frozen=True)
class ExposureObjects:
    endpoints: Dict[str, Any]
    service: Dict[str, Any]

    @property
    def name(self) -> str:
        return self.endpoints["metadata"]["name"]


@dataclass(frozen=True)
class ClaimRef:
    namespace: str
    name: str


@dataclass
class VolumeDescriptor:
    """
    The PersistentVolume handed back to the controller. Nothing else about a
    provisioned volume is stored: delete rebuilds brick paths and object names
    from the claim reference and the storage-class parameters.
    """
    name: str
    endpoints_name: str
    path: str
    capacity: str
    access_modes: List[str]
    reclaim_policy: str = "Delete"
    read_only: bool = False
    annotations: Dict[str, str] = field(default_factory=dict)
    storage_class_name: Optional[str] = None
    claim_ref: Optional[ClaimRef] = None

    @property
    def gid(self) -> Optional[str]:
        return self.annotations.get(ANN_GID)

    def to_manifest(self) -> Dict[str, Any]:
        spec: Dict[str, Any] = {
            "persistentVolumeReclaimPolicy": self.reclaim_policy,
            "accessModes": list(self.access_modes),
            "capacity": {"storage": self.capacity},
            "glusterfs": {
                "endpoints": self.endpoints_name,
                "path": self.path,
                "readOnly": self.read_only,
            },
        }
        if self.storage_class_name:
            spec["storageClassName"] = self.storage_class_name
        if self.claim_ref:
            spec["claimRef"] = {
                "namespace": self.claim_ref.namespace,
                "name": self.claim_ref.name,
            }
        return {
            "apiVersion": "v1",
            "kind": "PersistentVolume",
            "metadata": {
                "name": self.name,
                "annotations": dict(self.annotations),
            },
            "spec": spec,
        }

    @classmethod
    def from_manifest(cls, obj: Dict[str, Any]) -> "VolumeDescriptor":
        meta = obj.get("metadata") or {}
        spec = obj.get("spec") or {}
        annotations = dict(meta.get("annotations") or {})
        gluster = spec.get("glusterfs") or {}

        claim = spec.get("claimRef")
        claim_ref = None
        if claim:
            claim_ref = ClaimRef(
                namespace=claim.get("namespace") or "",
                name=claim.get("name") or "",
            )

        # Older volumes carry the class in the beta annotation only.
        storage_class = spec.get("storageClassName") or annotations.get(ANN_STORAGE_CLASS)

        return cls(
            name=meta.get("name", ""),
            endpoints_name=gluster.get("endpoints", ""),
            path=gluster.get("path", ""),
            capacity=(spec.get("capacity") or {}).get("storage", ""),
            access_modes=list(spec.get("accessModes") or []),
            reclaim_policy=spec.get("persistentVolumeReclaimPolicy", "Delete"),
            read_only=bool(gluster.get("readOnly", False)),
            annotations=annotations,
            storage_class_name=storage_class,
            claim_ref=claim_ref,
        )


@dataclass
class StepOutcome:
    step: str          # "volume" | "brick" | "exposure" | "gid"
    target: str        # host, volume or object the step acted on
    ok: bool
    error: Optional[str] = None


@dataclass
class TeardownReport:
    outcomes: List[StepOutcome] = field(default_factory=list)

    def add(self, step: str, target: str, error: Optional[Exception | str] = None) -> None:
        self.outcomes.append(
            StepOutcome(
                step=step,
                target=target,
                ok=error is None,
                error=None if error is None else str(error),
            )
        )

    @property
    def failures(self) -> List[StepOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def clean(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        ok = sum(1 for o in self.outcomes if o.ok)
        return f"OK={ok} FAILED={len(self.failures)}"
