# tests/conftest.py
from __future__ import annotations

from typing import Dict, List, Optional, Set, Tuple

import pytest

from gluster_provisioner.config.loader import resolve
from gluster_provisioner.errors import (
    AllocatorError,
    AlreadyExistsError,
    ObjectStoreError,
    RemoteCommandError,
)
from gluster_provisioner.k8s.client import NotFoundError
from gluster_provisioner.volume.models import ProvisionRequest


# ---- Fake transport ----

class FakeRunner:
    """
    Records every batch and behaves like a tiny gluster cluster:
    'volume create' registers a volume, 'volume info' fails for unknown ones.
    fail_on maps (host, substring) -> rc for commands that must fail.
    """

    def __init__(self, fail_on: Optional[Dict[Tuple[str, str], int]] = None):
        self.calls: List[Tuple[str, List[str]]] = []
        self.executed: List[Tuple[str, str]] = []
        self.fail_on = fail_on or {}
        self.volumes: Set[str] = set()

    def run(self, host, commands, config) -> None:
        self.calls.append((host, list(commands)))
        for cmd in commands:
            self.executed.append((host, cmd))
            for (h, needle), rc in self.fail_on.items():
                if h == host and needle in cmd:
                    raise RemoteCommandError(host, cmd, rc, "boom")
            self._apply(host, cmd)

    def _apply(self, host: str, cmd: str) -> None:
        words = cmd.split()
        if "volume" not in words:
            return
        i = words.index("volume")
        op, name = words[i + 1], words[i + 2]
        if op == "create":
            self.volumes.add(name)
        elif op == "info" and name not in self.volumes:
            raise RemoteCommandError(host, cmd, 1, f"Volume {name} does not exist")
        elif op == "delete":
            self.volumes.discard(name)

    def commands(self, host: Optional[str] = None) -> List[str]:
        return [c for h, c in self.executed if host is None or h == host]


# ---- Fake object store ----

class FakeStore:
    def __init__(self):
        self.endpoints: Dict[Tuple[str, str], dict] = {}
        self.services: Dict[Tuple[str, str], dict] = {}
        self.storage_classes: Dict[str, dict] = {}
        self.pvs: List[dict] = []
        self.fail_create: Set[str] = set()     # {"Endpoints", "Service"}
        self.fail_delete = False
        self.deleted: List[Tuple[str, str]] = []

    def _create(self, kind, bucket, namespace, body):
        name = body["metadata"]["name"]
        if kind in self.fail_create:
            raise ObjectStoreError(kind, namespace, name, "500 Internal Server Error")
        if (namespace, name) in bucket:
            raise AlreadyExistsError(kind, namespace, name, "409 Conflict")
        bucket[(namespace, name)] = body

    def create_endpoints(self, namespace, body):
        self._create("Endpoints", self.endpoints, namespace, body)

    def create_service(self, namespace, body):
        self._create("Service", self.services, namespace, body)

    def delete_service(self, namespace, name):
        if self.fail_delete:
            raise ObjectStoreError("Service", namespace, name, "500 Internal Server Error")
        if (namespace, name) not in self.services:
            raise NotFoundError("Service", namespace, name, "404 Not Found")
        del self.services[(namespace, name)]
        # endpoints controller cleans up the matching Endpoints
        self.endpoints.pop((namespace, name), None)
        self.deleted.append((namespace, name))

    def get_storage_class(self, name):
        return self.storage_classes.get(name)

    def list_persistent_volumes(self):
        return list(self.pvs)


# ---- Fake allocator ----

class FakeAllocator:
    def __init__(self, gid: int = 2000, fail_allocate: bool = False, fail_release: bool = False):
        self.gid = gid
        self.fail_allocate = fail_allocate
        self.fail_release = fail_release
        self.allocated: List[str] = []
        self.released: List[str] = []

    def allocate_next(self, request):
        if self.fail_allocate:
            raise AllocatorError("range exhausted")
        self.allocated.append(request.pv_name)
        return self.gid

    def release(self, descriptor):
        if self.fail_release:
            raise AllocatorError("release failed")
        self.released.append(descriptor.name)


PARAMS = {"brickrootPaths": "h1:/data,h2:/data", "volumeType": "replica 2"}


@pytest.fixture
def params():
    return dict(PARAMS)


@pytest.fixture
def cfg(params):
    return resolve("vol1", params)


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def store():
    s = FakeStore()
    s.storage_classes["glusterfs-simple"] = {
        "name": "glusterfs-simple",
        "provisioner": "gluster.org/glusterfs-simple",
        "parameters": dict(PARAMS),
    }
    return s


@pytest.fixture
def allocator():
    return FakeAllocator()


@pytest.fixture
def request_factory():
    def make(**overrides):
        kw = dict(
            pv_name="vol1",
            namespace="ns1",
            claim_name="pvc-a",
            capacity="1Gi",
            access_modes=["ReadWriteMany"],
            parameters=dict(PARAMS),
            storage_class_name="glusterfs-simple",
        )
        kw.update(overrides)
        return ProvisionRequest(**kw)
    return make
