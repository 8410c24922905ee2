# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/gluster_provisioner/logging/log.py

from __future__ import annotations

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path

LOG_DIR_ENV = "GLUSTER_PROVISIONER_LOG_DIR"

# Libraries that log every packet / HTTP call at DEBUG
NOISY_LOGGERS = ("paramiko", "kubernetes", "urllib3")


def default_log_dir() -> Path:
    override = os.environ.get(LOG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".gluster-provisioner" / "logs"


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "gluster_provisioner",
    verbose: bool = False,
) -> tuple[logging.Logger, str, Path]:
    """
    One log file per CLI run with every remote command, its output and exit
    code (DEBUG). The console gets INFO, or DEBUG with --verbose.

    Returns (logger, run_id, log_path); failures print log_path so the
    operator can find the trace.
    """
    run_id = str(uuid.uuid4())

    base_dir = base_dir or default_log_dir()
    base_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_path = base_dir / f"{name}-{ts}-{run_id[:8]}.log"

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False

    fh = logging.FileHandler(log_path)
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-7s | %(module)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(logging.Formatter("%(levelname)-7s %(message)s"))

    logger.addHandler(fh)
    logger.addHandler(ch)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.debug("run_id=%s log_file=%s", run_id, log_path)
    return logger, run_id, log_path
