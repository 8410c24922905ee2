# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/k8s/client.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from gluster_provisioner.errors import AlreadyExistsError, ConfigError, ObjectStoreError

log = logging.getLogger("gluster_provisioner")


class NotFoundError(ObjectStoreError):
    pass


class ObjectStore(Protocol):
    """
    The control-plane calls the provisioner needs. Bodies are plain
    Kubernetes manifests (dicts).
    """

    def create_endpoints(self, namespace: str, body: Dict[str, Any]) -> None: ...

    def create_service(self, namespace: str, body: Dict[str, Any]) -> None: ...

    def delete_service(self, namespace: str, name: str) -> None: ...

    def get_storage_class(self, name: str) -> Optional[Dict[str, Any]]: ...

    def list_persistent_volumes(self) -> List[Dict[str, Any]]: ...


def load_kube_clients(
    kubeconfig: Optional[str] = None,
    kube_context: Optional[str] = None,
) -> tuple[client.CoreV1Api, client.StorageV1Api]:
    """
    In-cluster config first (the provisioner normally runs as a pod),
    falling back to a kubeconfig.
    """
    try:
        if kubeconfig or kube_context:
            config.load_kube_config(config_file=kubeconfig, context=kube_context)
        else:
            try:
                config.load_incluster_config()
            except config.ConfigException:
                config.load_kube_config()
    except (config.ConfigException, OSError) as e:
        raise ConfigError(f"cannot load Kubernetes configuration: {e}") from e
    return client.CoreV1Api(), client.StorageV1Api()


def _translate(e: ApiException, kind: str, namespace: str, name: str) -> ObjectStoreError:
    reason = f"{e.status} {e.reason}"
    if e.status == 409:
        return AlreadyExistsError(kind, namespace, name, reason)
    if e.status == 404:
        return NotFoundError(kind, namespace, name, reason)
    return ObjectStoreError(kind, namespace, name, reason)


class KubernetesObjectStore:
    def __init__(self, core: client.CoreV1Api, storage: client.StorageV1Api):
        self.core = core
        self.storage = storage

    def create_endpoints(self, namespace: str, body: Dict[str, Any]) -> None:
        name = body["metadata"]["name"]
        try:
            self.core.create_namespaced_endpoints(namespace=namespace, body=body)
        except ApiException as e:
            raise _translate(e, "Endpoints", namespace, name) from e

    def create_service(self, namespace: str, body: Dict[str, Any]) -> None:
        name = body["metadata"]["name"]
        try:
            self.core.create_namespaced_service(namespace=namespace, body=body)
        except ApiException as e:
            raise _translate(e, "Service", namespace, name) from e

    def delete_service(self, namespace: str, name: str) -> None:
        try:
            self.core.delete_namespaced_service(name=name, namespace=namespace)
        except ApiException as e:
            raise _translate(e, "Service", namespace, name) from e

    def get_storage_class(self, name: str) -> Optional[Dict[str, Any]]:
        try:
            sc = self.storage.read_storage_class(name=name)
        except ApiException as e:
            if e.status == 404:
                return None
            raise _translate(e, "StorageClass", "", name) from e
        return {
            "name": sc.metadata.name,
            "provisioner": sc.provisioner,
            "parameters": dict(sc.parameters or {}),
        }

    def list_persistent_volumes(self) -> List[Dict[str, Any]]:
        try:
            pvs = self.core.list_persistent_volume()
        except ApiException as e:
            raise _translate(e, "PersistentVolume", "", "*") from e

        items = []
        for pv in pvs.items:
            annotations = dict(pv.metadata.annotations or {})
            items.append({
                "name": pv.metadata.name,
                "annotations": annotations,
                "storage_class_name": (pv.spec.storage_class_name if pv.spec else None)
                or annotations.get("volume.beta.kubernetes.io/storage-class"),
            })
        return items
