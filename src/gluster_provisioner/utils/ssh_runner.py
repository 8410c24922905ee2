# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/utils/ssh_runner.py

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Optional

import paramiko


@dataclass(frozen=True)
class SSHCredentials:
    """
    How to log into a storage host. The host itself comes from the brick root.
    """
    username: str = "root"
    port: int = 22
    password: Optional[str] = None
    pkey_path: Optional[str] = None  # path to SSH private key file


class SSHRunner:
    def __init__(self, client: paramiko.SSHClient):
        self.client = client

    def run(
        self,
        cmd: str,
        *,
        sudo: bool = False,
        timeout: Optional[float] = None,
    ) -> tuple[int, str, str]:
        final = f"sudo -S bash -lc {shlex.quote(cmd)}" if sudo else f"bash -lc {shlex.quote(cmd)}"

        stdin, stdout, stderr = self.client.exec_command(final, timeout=timeout)
        out = stdout.read().decode("utf-8", "replace")
        err = stderr.read().decode("utf-8", "replace")
        rc = stdout.channel.recv_exit_status()
        return rc, out, err

    def close(self) -> None:
        self.client.close()


def _load_pkey(path: str):
    for key_cls in (
        paramiko.RSAKey,
        paramiko.Ed25519Key,
        paramiko.ECDSAKey,
    ):
        try:
            return key_cls.from_private_key_file(path)
        except paramiko.SSHException:
            continue
    return None


def open_ssh(
    host: str,
    creds: SSHCredentials,
    *,
    connect_timeout: float = 20.0,
) -> SSHRunner:
    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    pkey = _load_pkey(creds.pkey_path) if creds.pkey_path else None

    client.connect(
        hostname=host,
        port=creds.port,
        username=creds.username,
        password=creds.password if not pkey else None,
        pkey=pkey,
        timeout=connect_timeout,
        allow_agent=True,
        look_for_keys=True,
    )

    return SSHRunner(client)
