# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/cli/app.py
import logging
from pathlib import Path
from typing import Optional

import typer
import yaml

from gluster_provisioner.config.loader import load_manifest, load_request
from gluster_provisioner.errors import ProvisionerError
from gluster_provisioner.execution.pod_exec import PodExecCommandRunner
from gluster_provisioner.execution.ssh import SSHCommandRunner
from gluster_provisioner.gid.allocator import PersistentVolumeGidAllocator
from gluster_provisioner.k8s.client import KubernetesObjectStore, load_kube_clients
from gluster_provisioner.logging.log import init_logging
from gluster_provisioner.observers.console import ConsoleObserver
from gluster_provisioner.observers.logger import LoggerObserver
from gluster_provisioner.provisioner import ProvisioningOrchestrator
from gluster_provisioner.utils.ssh_runner import SSHCredentials
from gluster_provisioner.volume.models import VolumeDescriptor

app = typer.Typer(help="GlusterFS simple provisioner")

TRANSPORTS = ("ssh", "pod-exec")


def build_orchestrator(
    *,
    kubeconfig: Optional[str],
    context: Optional[str],
    transport: str,
    ssh_username: str,
    ssh_key: Optional[Path],
    ssh_password: Optional[str],
    logger: Optional[logging.Logger] = None,
) -> ProvisioningOrchestrator:
    if transport not in TRANSPORTS:
        raise typer.BadParameter(f"transport must be one of {', '.join(TRANSPORTS)}")

    core, storage = load_kube_clients(kubeconfig, context)
    store = KubernetesObjectStore(core, storage)

    if transport == "ssh":
        runner = SSHCommandRunner(SSHCredentials(
            username=ssh_username,
            password=ssh_password,
            pkey_path=str(ssh_key) if ssh_key else None,
        ))
    else:
        runner = PodExecCommandRunner(core)

    return ProvisioningOrchestrator(
        runner,
        store,
        PersistentVolumeGidAllocator(store),
        observers=[ConsoleObserver(), LoggerObserver(logger or logging.getLogger("gluster_provisioner"))],
    )


@app.command()
def provision(
    request: Path = typer.Argument(..., help="Provision request YAML"),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Path to kubeconfig (default: in-cluster)"),
    context: Optional[str] = typer.Option(None, "--context", "-c", help="Kube context"),
    transport: str = typer.Option("ssh", "--transport", help="ssh | pod-exec"),
    ssh_username: str = typer.Option("root", "--ssh-username", help="SSH username for storage hosts"),
    ssh_key: Optional[Path] = typer.Option(None, "--ssh-key", help="Path to SSH private key"),
    ssh_password: Optional[str] = typer.Option(None, "--ssh-password", help="SSH password (if not using key)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the PersistentVolume manifest here"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug output on the console"),
):
    """
    Create bricks, the gluster volume and its endpoints for one claim, and
    print the resulting PersistentVolume.
    """
    logger, _, log_path = init_logging(verbose=verbose)

    try:
        orch = build_orchestrator(
            kubeconfig=kubeconfig, context=context, transport=transport,
            ssh_username=ssh_username, ssh_key=ssh_key, ssh_password=ssh_password, logger=logger,
        )
        req = load_request(request)
        if not req.parameters and req.storage_class_name:
            sc = orch.store.get_storage_class(req.storage_class_name)
            if sc is None:
                typer.echo(f"storage class {req.storage_class_name} not found", err=True)
                raise typer.Exit(code=1)
            req.parameters = sc["parameters"]
        descriptor, _ = orch.provision(req)
    except ProvisionerError as e:
        typer.echo(f"provisioning failed ({e.state.value}): {e}", err=True)
        typer.echo(f"log: {log_path}", err=True)
        raise typer.Exit(code=1)

    manifest = yaml.safe_dump(descriptor.to_manifest(), sort_keys=False)
    if output:
        output.write_text(manifest)
        typer.echo(f"PersistentVolume written to {output}")
    else:
        typer.echo(manifest)


@app.command()
def delete(
    volume: Path = typer.Argument(..., help="PersistentVolume manifest YAML"),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Path to kubeconfig (default: in-cluster)"),
    context: Optional[str] = typer.Option(None, "--context", "-c", help="Kube context"),
    transport: str = typer.Option("ssh", "--transport", help="ssh | pod-exec"),
    ssh_username: str = typer.Option("root", "--ssh-username", help="SSH username for storage hosts"),
    ssh_key: Optional[Path] = typer.Option(None, "--ssh-key", help="Path to SSH private key"),
    ssh_password: Optional[str] = typer.Option(None, "--ssh-password", help="SSH password (if not using key)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug output on the console"),
):
    """
    Tear down the gluster volume, bricks and service behind a PersistentVolume.
    Exits 1 when some cleanup step failed.
    """
    logger, _, log_path = init_logging(verbose=verbose)

    try:
        orch = build_orchestrator(
            kubeconfig=kubeconfig, context=context, transport=transport,
            ssh_username=ssh_username, ssh_key=ssh_key, ssh_password=ssh_password, logger=logger,
        )
        descriptor = VolumeDescriptor.from_manifest(load_manifest(volume))
        report = orch.delete(descriptor)
    except ProvisionerError as e:
        typer.echo(f"delete failed: {e}", err=True)
        typer.echo(f"log: {log_path}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"[delete] {descriptor.name}: {report.summary()}")
    for f in report.failures:
        typer.echo(f"  {f.step} {f.target}: {f.error}", err=True)
    if not report.clean:
        typer.echo(f"log: {log_path}", err=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
