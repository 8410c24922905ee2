# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/observers/console.py
import typer

from .events import BaseEvent, is_failure


class ConsoleObserver:
    """Human-readable progress for CLI runs."""

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        data = ", ".join(
            f"{k}={v}" for k, v in d.items() if k not in ("ts", "run_id", "env", "context")
        )
        line = f"[{d['ts']}] {event.__class__.__name__} {data}"
        typer.echo(line, err=is_failure(event))
