# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events of one provision/delete call
    env: str          # "provision" | "delete"
    context: Optional[str]  # pv name

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(env: str, context: Optional[str]) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": str(uuid.uuid4()),
        "env": env,
        "context": context,
    }


# ---------------------------------------------------------------------
# Provision lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ProvisionStarted(BaseEvent):
    namespace: str
    claim: str

@dataclass(frozen=True)
class GidAllocated(BaseEvent):
    gid: int

@dataclass(frozen=True)
class BricksCreated(BaseEvent):
    bricks: List[str]

@dataclass(frozen=True)
class VolumeCreated(BaseEvent):
    volume: str
    host: str

@dataclass(frozen=True)
class ExposurePublished(BaseEvent):
    namespace: str
    name: str
    addresses: List[str]

@dataclass(frozen=True)
class ProvisionSucceeded(BaseEvent):
    volume: str
    duration_ms: int

@dataclass(frozen=True)
class ProvisionFailed(BaseEvent):
    stage: str        # "validate" | "config" | "gid" | "bricks" | "volume" | "exposure"
    error: str


# ---------------------------------------------------------------------
# Rollback & delete
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RollbackStarted(BaseEvent):
    stage: str

@dataclass(frozen=True)
class RollbackResult(BaseEvent):
    ok: int
    failed: int

@dataclass(frozen=True)
class DeleteStarted(BaseEvent):
    namespace: str
    claim: str

@dataclass(frozen=True)
class DeleteSummary(BaseEvent):
    ok: int
    failed: int


def is_failure(event: BaseEvent) -> bool:
    if isinstance(event, ProvisionFailed):
        return True
    if isinstance(event, (RollbackResult, DeleteSummary)):
        return event.failed > 0
    return False
