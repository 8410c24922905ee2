# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/provisioner.py

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from .config.loader import resolve
from .config.models import ProvisionerConfig
from .errors import (
    AllocatorError,
    ConfigError,
    ProvisionerError,
    UnsupportedRequestError,
)
from .execution.runner import CommandRunner
from .gid.allocator import GidAllocator
from .k8s.client import ObjectStore
from .volume.bricks import BrickProvisioner
from .volume.exposure import NetworkExposurePublisher
from .volume.gluster import ClusterControlEndpoint, VolumeLifecycle
from .volume.models import (
    ANN_CREATED_BY,
    ANN_GID,
    CREATED_BY,
    ClaimRef,
    ProvisionRequest,
    TeardownReport,
    VolumeDescriptor,
    exposure_name,
)
from .volume.state import ProvisioningState

# Observer bits
from .observers.dispatcher import EventBus
from .observers.events import (
    new_ctx,
    ProvisionStarted,
    GidAllocated,
    BricksCreated,
    VolumeCreated,
    ExposurePublished,
    ProvisionSucceeded,
    ProvisionFailed,
    RollbackStarted,
    RollbackResult,
    DeleteStarted,
    DeleteSummary,
)

log = logging.getLogger("gluster_provisioner")


class ProvisioningOrchestrator:
    """
    Creates and tears down glusterfs volumes for claims:

      provision: bricks -> gluster volume -> endpoints/service
      delete:    gluster volume -> bricks -> service, then release the gid

    Any failure after the gid is allocated triggers a full best-effort
    teardown before the original error is raised. Holds no state between
    calls; the caller serialises calls for the same volume.
    """

    def __init__(
        self,
        runner: CommandRunner,
        store: ObjectStore,
        allocator: GidAllocator,
        *,
        control: Optional[ClusterControlEndpoint] = None,
        observers: Optional[List] = None,
    ):
        self.store = store
        self.allocator = allocator
        self.bricks = BrickProvisioner(runner)
        self.volumes = VolumeLifecycle(runner, control)
        self.exposure = NetworkExposurePublisher(store)
        self.bus = EventBus(observers or [])

    # ------------------------------------------------------------------
    # Provision
    # ------------------------------------------------------------------

    def provision(self, request: ProvisionRequest) -> tuple[VolumeDescriptor, ProvisioningState]:
        run_ctx = new_ctx(env="provision", context=request.pv_name)
        t0 = time.time()

        if request.selector is not None:
            err = UnsupportedRequestError("claim Selector is not supported")
            self.bus.emit(ProvisionFailed(stage="validate", error=str(err), **run_ctx))
            raise err

        log.debug("Start provisioning volume %s for claim %s/%s",
                  request.pv_name, request.namespace, request.claim_name)
        self.bus.emit(ProvisionStarted(namespace=request.namespace, claim=request.claim_name, **run_ctx))

        try:
            cfg = resolve(request.pv_name, request.parameters)
        except ConfigError as e:
            self.bus.emit(ProvisionFailed(stage="config", error=str(e), **run_ctx))
            raise

        try:
            gid = self.allocator.allocate_next(request)
        except Exception as e:
            self.bus.emit(ProvisionFailed(stage="gid", error=str(e), **run_ctx))
            if isinstance(e, ProvisionerError):
                raise
            raise AllocatorError(f"gid allocation failed: {e}") from e
        self.bus.emit(GidAllocated(gid=gid, **run_ctx))

        ep_name = exposure_name(request.claim_name)
        stage = "bricks"
        try:
            bricks = self.bricks.create_bricks(request.namespace, request.claim_name, cfg, gid)
            self.bus.emit(BricksCreated(bricks=[b.spec() for b in bricks], **run_ctx))

            stage = "volume"
            self.volumes.create_volume(bricks, cfg)
            self.bus.emit(VolumeCreated(
                volume=cfg.volume_name,
                host=self.volumes.control.select([b.host for b in bricks]),
                **run_ctx,
            ))

            stage = "exposure"
            objects = self.exposure.publish(request.namespace, ep_name, cfg.hosts, request.claim_name)
            self.bus.emit(ExposurePublished(
                namespace=request.namespace, name=objects.name, addresses=cfg.hosts, **run_ctx,
            ))
        except Exception as e:
            log.error("Provisioning %s failed while creating %s: %s", request.pv_name, stage, e)
            self.bus.emit(ProvisionFailed(stage=stage, error=str(e), **run_ctx))
            self._rollback(request, cfg, gid, stage, run_ctx)
            raise

        descriptor = VolumeDescriptor(
            name=request.pv_name,
            endpoints_name=objects.name,
            path=cfg.volume_name,
            capacity=request.capacity,
            access_modes=list(request.access_modes),
            reclaim_policy=request.reclaim_policy,
            annotations={
                ANN_CREATED_BY: CREATED_BY,
                ANN_GID: str(gid),
            },
            storage_class_name=request.storage_class_name,
            claim_ref=ClaimRef(namespace=request.namespace, name=request.claim_name),
        )
        duration_ms = int((time.time() - t0) * 1000)
        self.bus.emit(ProvisionSucceeded(volume=cfg.volume_name, duration_ms=duration_ms, **run_ctx))
        return descriptor, ProvisioningState.FINISHED

    def _rollback(
        self,
        request: ProvisionRequest,
        cfg: ProvisionerConfig,
        gid: int,
        stage: str,
        run_ctx: Dict[str, Any],
    ) -> TeardownReport:
        self.bus.emit(RollbackStarted(stage=stage, **run_ctx))
        report = self.teardown(request.namespace, request.claim_name, cfg)

        # no PV will carry this gid, so hand it back to the allocator
        unused = VolumeDescriptor(
            name=request.pv_name,
            endpoints_name=exposure_name(request.claim_name),
            path=cfg.volume_name,
            capacity=request.capacity,
            access_modes=list(request.access_modes),
            annotations={ANN_GID: str(gid)},
            storage_class_name=request.storage_class_name,
        )
        self._release_gid(unused, report)
        if not report.clean:
            log.warning("Rollback of %s left resources behind: %s", cfg.volume_name, report.summary())
        self.bus.emit(RollbackResult(ok=len(report.outcomes) - len(report.failures),
                                     failed=len(report.failures), **run_ctx))
        return report

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def teardown(
        self,
        namespace: str,
        claim_name: str,
        cfg: ProvisionerConfig,
        report: Optional[TeardownReport] = None,
    ) -> TeardownReport:
        """Volume, bricks on every configured host, then the service. Never raises."""
        report = report if report is not None else TeardownReport()
        self.volumes.delete_volume(namespace, claim_name, cfg, report)
        self.bricks.delete_bricks(namespace, claim_name, cfg, report)
        self.exposure.unpublish(namespace, exposure_name(claim_name), report)
        return report

    def delete(self, descriptor: VolumeDescriptor) -> TeardownReport:
        """
        Tear down a provisioned volume.

        Raises ConfigError only when the volume cannot be mapped back to its
        configuration or claim; individual cleanup failures are logged and
        returned in the report instead.
        """
        run_ctx = new_ctx(env="delete", context=descriptor.name)

        if not descriptor.storage_class_name:
            log.error("Fail to get class for volume: %s", descriptor.name)
            raise ConfigError(f"volume {descriptor.name} has no storage class")
        sc = self.store.get_storage_class(descriptor.storage_class_name)
        if sc is None:
            log.error("Fail to get class for volume: %s", descriptor.name)
            raise ConfigError(f"storage class {descriptor.storage_class_name} not found")

        cfg = resolve(descriptor.name, sc.get("parameters") or {})

        claim = descriptor.claim_ref
        if claim is None:
            log.error("glusterfs: ClaimRef is nil")
            raise ConfigError(f"volume {descriptor.name} has no claim reference")
        if not claim.namespace:
            log.error("glusterfs: namespace is nil")
            raise ConfigError(f"volume {descriptor.name} claim reference has no namespace")

        self.bus.emit(DeleteStarted(namespace=claim.namespace, claim=claim.name, **run_ctx))
        report = self.teardown(claim.namespace, claim.name, cfg)

        self._release_gid(descriptor, report)

        if not report.clean:
            log.warning("Volume %s deleted with leftovers: %s", descriptor.name, report.summary())
        self.bus.emit(DeleteSummary(ok=len(report.outcomes) - len(report.failures),
                                    failed=len(report.failures), **run_ctx))
        return report

    def _release_gid(self, descriptor: VolumeDescriptor, report: TeardownReport) -> None:
        try:
            self.allocator.release(descriptor)
        except Exception as e:
            log.error("glusterfs: error to release GID of %s: %s", descriptor.name, e)
            report.add("gid", descriptor.name, e)
        else:
            report.add("gid", descriptor.name)
