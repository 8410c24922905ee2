# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/volume/exposure.py

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

from gluster_provisioner.errors import AlreadyExistsError, ObjectStoreError
from gluster_provisioner.k8s.client import NotFoundError, ObjectStore
from .models import LABEL_PROVISIONED_FOR, ExposureObjects, TeardownReport

log = logging.getLogger("gluster_provisioner")

# Gluster clients only need the addresses; the port exists to satisfy the
# Endpoints/Service schema.
PLACEHOLDER_PORT = 1
PLACEHOLDER_PROTOCOL = "TCP"


def build_endpoints(namespace: str, name: str, hosts: Sequence[str], claim_name: str) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Endpoints",
        "metadata": {
            "namespace": namespace,
            "name": name,
            "labels": {LABEL_PROVISIONED_FOR: claim_name},
        },
        "subsets": [{
            "addresses": [{"ip": h} for h in hosts],
            "ports": [{"port": PLACEHOLDER_PORT, "protocol": PLACEHOLDER_PROTOCOL}],
        }],
    }


def build_service(namespace: str, name: str, claim_name: str) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "namespace": namespace,
            "name": name,
            "labels": {LABEL_PROVISIONED_FOR: claim_name},
        },
        "spec": {
            "ports": [{"port": PLACEHOLDER_PORT, "protocol": PLACEHOLDER_PROTOCOL}],
        },
    }


class NetworkExposurePublisher:
    def __init__(self, store: ObjectStore):
        self.store = store

    def publish(
        self,
        namespace: str,
        exposure_name: str,
        hosts: Sequence[str],
        claim_name: str,
    ) -> ExposureObjects:
        """
        Create the Endpoints + Service pair. Objects that already exist count
        as created, so calling this again after a partial failure is safe.
        """
        endpoints = build_endpoints(namespace, exposure_name, hosts, claim_name)
        service = build_service(namespace, exposure_name, claim_name)

        for kind, body, create in (
            ("endpoint", endpoints, self.store.create_endpoints),
            ("service", service, self.store.create_service),
        ):
            try:
                create(namespace, body)
            except AlreadyExistsError:
                log.info("glusterfs: %s [%s] already exists in namespace [%s]",
                         kind, exposure_name, namespace)
            except ObjectStoreError as e:
                log.error("glusterfs: failed to create %s: %s", kind, e)
                raise

        log.debug("glusterfs: dynamic ep %s and svc %s in %s", exposure_name, exposure_name, namespace)
        return ExposureObjects(endpoints=endpoints, service=service)

    def unpublish(
        self,
        namespace: str,
        exposure_name: str,
        report: Optional[TeardownReport] = None,
    ) -> None:
        """
        Delete the Service; its same-named Endpoints are removed by the
        endpoints controller. Never raises.
        """
        target = f"{namespace}/{exposure_name}"
        try:
            self.store.delete_service(namespace, exposure_name)
        except NotFoundError:
            log.info("glusterfs: service %s already gone", target)
        except Exception as e:
            log.error("glusterfs: error deleting service %s: %s", target, e)
            if report is not None:
                report.add("exposure", target, e)
            return
        else:
            log.info("glusterfs: service/endpoint %s deleted successfully", target)

        if report is not None:
            report.add("exposure", target)
