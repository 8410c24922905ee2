# tests/execution/test_ssh_runner.py
from __future__ import annotations

import shlex
import types

import paramiko
import pytest

from gluster_provisioner.errors import RemoteCommandError
from gluster_provisioner.execution.ssh import SSHCommandRunner
from gluster_provisioner.utils import ssh_runner as ssh_mod
from gluster_provisioner.utils.ssh_runner import SSHCredentials, SSHRunner, open_ssh


# ---- Fakes for paramiko ----

class _FakeChannel:
    def __init__(self, rc=0): self._rc = rc
    def recv_exit_status(self): return self._rc

class _Buf:
    def __init__(self, s=""): self._s = s
    def read(self): return self._s.encode()

class FakeSSHClient:
    """
    Captures exec_command() calls; responses maps the unwrapped command to (out, err, rc).
    """
    def __init__(self, log, responses=None, raise_on=None):
        self.log = log
        self._responses = responses or {}
        self._raise_on = raise_on
    def set_missing_host_key_policy(self, policy): pass
    def connect(self, **kw):
        self.log.append(("connect", kw))
    def exec_command(self, cmd, timeout=None):
        self.log.append(("exec", cmd))
        inner = shlex.split(cmd)[-1]
        if self._raise_on and self._raise_on in inner:
            raise paramiko.SSHException("channel closed")
        out, err, rc = self._responses.get(inner, ("", "", 0))
        stdout = _Buf(out)
        stderr = _Buf(err)
        stdout.channel = _FakeChannel(rc)
        return types.SimpleNamespace(write=lambda *a, **k: None), stdout, stderr
    def close(self):
        self.log.append(("close",))


def _runner(ops, responses=None, raise_on=None, **kw):
    def connect(host, creds, connect_timeout=20.0):
        ops.append(("open", host, creds.username))
        return SSHRunner(FakeSSHClient(ops, responses, raise_on))
    return SSHCommandRunner(SSHCredentials(username="ops"), connect=connect, **kw)


def _execs(ops):
    return [o[1] for o in ops if o[0] == "exec"]


def test_ssh_runner_wraps_commands_with_sudo(cfg):
    ops = []
    _runner(ops).run("h1", ["mkdir -p /data/ns1/pvc-a-vol1"], cfg)

    assert ops[0] == ("open", "h1", "ops")
    assert _execs(ops) == ["sudo -S bash -lc 'mkdir -p /data/ns1/pvc-a-vol1'"]
    assert ops[-1] == ("close",)


def test_ssh_runner_without_sudo(cfg):
    ops = []
    _runner(ops, sudo=False).run("h1", ["gluster --mode=script volume start vol1"], cfg)
    assert _execs(ops) == ["bash -lc 'gluster --mode=script volume start vol1'"]


def test_ssh_runner_stops_batch_at_first_failure(cfg):
    ops = []
    responses = {"chown :2000 /d": ("", "chown: invalid group", 1)}

    with pytest.raises(RemoteCommandError) as exc:
        _runner(ops, responses).run("h1", ["mkdir -p /d", "chown :2000 /d", "chmod 0771 /d"], cfg)

    assert exc.value.host == "h1"
    assert exc.value.command == "chown :2000 /d"
    assert exc.value.returncode == 1
    assert "invalid group" in exc.value.stderr
    assert len(_execs(ops)) == 2
    assert ops[-1] == ("close",)


def test_ssh_runner_per_host_credentials(cfg):
    ops = []
    r = _runner(ops, per_host={"h2": SSHCredentials(username="gluster")})
    r.run("h1", ["true"], cfg)
    r.run("h2", ["true"], cfg)
    assert [o[2] for o in ops if o[0] == "open"] == ["ops", "gluster"]


def test_ssh_runner_transport_error_has_no_returncode(cfg):
    ops = []
    with pytest.raises(RemoteCommandError) as exc:
        _runner(ops, raise_on="rm -rf").run("h1", ["rm -rf /d"], cfg)
    assert exc.value.returncode is None
    assert ops[-1] == ("close",)


def test_ssh_runner_connect_retries_then_fails(cfg):
    attempts = []

    def connect(host, creds, connect_timeout=20.0):
        attempts.append(host)
        raise OSError("connection refused")

    r = SSHCommandRunner(connect=connect, connect_retries=3, connect_delay=0)

    with pytest.raises(RemoteCommandError) as exc:
        r.run("h9", ["true"], cfg)

    assert attempts == ["h9", "h9", "h9"]
    assert exc.value.command == "<ssh connect>"
    assert exc.value.returncode is None
    assert "connection refused" in exc.value.stderr


def test_ssh_runner_connect_recovers(cfg):
    ops = []
    calls = {"n": 0}

    def connect(host, creds, connect_timeout=20.0):
        calls["n"] += 1
        if calls["n"] == 1:
            raise paramiko.SSHException("banner timeout")
        return SSHRunner(FakeSSHClient(ops))

    SSHCommandRunner(connect=connect, connect_delay=0).run("h1", ["true"], cfg)
    assert calls["n"] == 2
    assert _execs(ops) == ["sudo -S bash -lc true"]


def test_open_ssh_uses_key_file(monkeypatch):
    ops = []
    monkeypatch.setattr(ssh_mod.paramiko, "SSHClient", lambda: FakeSSHClient(ops))
    monkeypatch.setattr(ssh_mod.paramiko.RSAKey, "from_private_key_file", staticmethod(lambda p: "PKEY"))

    runner = open_ssh("h1", SSHCredentials(username="ops", pkey_path="/k", password="pw"))

    assert isinstance(runner, SSHRunner)
    kw = ops[0][1]
    assert kw["hostname"] == "h1"
    assert kw["username"] == "ops"
    assert kw["pkey"] == "PKEY"
    assert kw["password"] is None


def test_open_ssh_falls_back_to_password(monkeypatch):
    ops = []
    monkeypatch.setattr(ssh_mod.paramiko, "SSHClient", lambda: FakeSSHClient(ops))

    open_ssh("h1", SSHCredentials(password="pw", port=2222))

    kw = ops[0][1]
    assert kw["pkey"] is None
    assert kw["password"] == "pw"
    assert kw["port"] == 2222
