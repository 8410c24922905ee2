# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/execution/pod_exec.py

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from kubernetes.client.exceptions import ApiException
from kubernetes.stream import stream

from gluster_provisioner.config.models import ProvisionerConfig
from gluster_provisioner.errors import RemoteCommandError
from .runner import BaseCommandRunner

log = logging.getLogger("gluster_provisioner")


class PodExecCommandRunner(BaseCommandRunner):
    """
    Runs commands inside the gluster server pod scheduled on a storage host.

    The pod is looked up per batch in config.namespace with config.selector and
    matched to the host by pod IP, host IP or node name (gluster server pods
    normally run with hostNetwork, so all three agree).
    """

    label = "pod-exec"

    def __init__(
        self,
        core_api,
        *,
        cmd_timeout: float = 300.0,
        exec_fn: Callable = stream,
    ):
        self.core = core_api
        self.cmd_timeout = cmd_timeout
        self._stream = exec_fn
        self._pod: Optional[tuple[str, str]] = None

    def find_pod(self, host: str, config: ProvisionerConfig) -> tuple[str, str]:
        try:
            pods = self.core.list_namespaced_pod(
                namespace=config.namespace,
                label_selector=config.selector,
            )
        except ApiException as e:
            raise RemoteCommandError(
                host, "<find gluster pod>", None,
                f"listing pods {config.namespace}/{config.selector} failed: {e.reason}",
            ) from e
        except Exception as e:
            # urllib3/socket errors: the API server is unreachable
            raise RemoteCommandError(
                host, "<find gluster pod>", None,
                f"listing pods {config.namespace}/{config.selector} failed: {e!r}",
            ) from e

        for pod in pods.items:
            status = pod.status
            if status is None or status.phase != "Running":
                continue
            if host in (status.pod_ip, status.host_ip, pod.spec.node_name):
                return pod.metadata.name, pod.metadata.namespace

        raise RemoteCommandError(
            host, "<find gluster pod>", None,
            f"no running pod matching {config.selector!r} in {config.namespace} on {host}",
        )

    def run(self, host, commands, config) -> None:
        self._pod = self.find_pod(host, config)
        log.debug("[pod-exec] %s -> pod %s/%s", host, self._pod[1], self._pod[0])
        try:
            super().run(host, commands, config)
        finally:
            self._pod = None

    def _exec(self, host: str, cmd: str, config: ProvisionerConfig) -> tuple[int, str, str]:
        name, namespace = self._pod
        try:
            rc, out, err = self._stream_command(host, cmd, name, namespace)
        except RemoteCommandError:
            raise
        except ApiException as e:
            raise RemoteCommandError(host, cmd, None, f"exec in {namespace}/{name} failed: {e.reason}") from e
        except Exception as e:
            # websocket and socket errors from stream() / update()
            raise RemoteCommandError(host, cmd, None, f"exec in {namespace}/{name} failed: {e!r}") from e

        if rc is None:
            raise RemoteCommandError(
                host, cmd, None, f"no exit status from {namespace}/{name}: {err or out}"
            )
        return rc, out, err

    def _stream_command(self, host: str, cmd: str, name: str, namespace: str):
        resp = self._stream(
            self.core.connect_get_namespaced_pod_exec,
            name,
            namespace,
            command=["/bin/bash", "-c", cmd],
            stderr=True,
            stdin=False,
            stdout=True,
            tty=False,
            _preload_content=False,
        )

        out_chunks: list[str] = []
        err_chunks: list[str] = []
        deadline = time.time() + self.cmd_timeout

        try:
            while resp.is_open():
                resp.update(timeout=1)
                if resp.peek_stdout():
                    out_chunks.append(resp.read_stdout())
                if resp.peek_stderr():
                    err_chunks.append(resp.read_stderr())
                if time.time() > deadline:
                    raise RemoteCommandError(
                        host, cmd, None, f"timed out after {self.cmd_timeout}s in {namespace}/{name}"
                    )
        finally:
            resp.close()

        return resp.returncode, "".join(out_chunks), "".join(err_chunks)
