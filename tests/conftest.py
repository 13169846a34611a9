"""Shared test fixtures for the sidecar mounter."""

from __future__ import annotations

import json
import os
import shutil
import socket
import tempfile
import threading
from pathlib import Path

import pytest

import models
from models import MountConfig, MountRequest


@pytest.fixture
def mount_root(monkeypatch):
    """Short-lived buffer/cache/tmp volume mounts.

    Kept under a short path since unix socket paths are limited in length.
    """
    root = Path(tempfile.mkdtemp(prefix="sm"))
    for name in ("buffer", "cache", "tmp"):
        (root / name).mkdir()
    monkeypatch.setattr(models, "buffer_volume_mount_path", str(root / "buffer"))
    monkeypatch.setattr(models, "cache_volume_mount_path", str(root / "cache"))
    monkeypatch.setattr(models, "tmp_volume_mount_path", str(root / "tmp"))
    yield root
    for path in root.rglob("*"):
        if path.is_file():
            path.chmod(0o600)
    shutil.rmtree(root, ignore_errors=True)


@pytest.fixture
def volume_dir(mount_root: Path) -> Path:
    """The per-volume directory holding the driver socket."""
    path = mount_root / "tmp" / ".volumes" / "vol1"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def socket_path(volume_dir: Path) -> str:
    return str(volume_dir / "socket")


@pytest.fixture
def make_mount_config(socket_path):
    """Build a MountConfig with an already decoded request."""

    def _make(options=None, bucket="my-bucket"):
        mc = MountConfig(socket_path)
        mc.request = MountRequest(
            bucketName=bucket, options=options or [], volumeName=mc.volume_name
        )
        return mc

    return _make


class FakeDriver:
    """Listens on the volume socket and sends one bundle like the CSI driver."""

    def __init__(
        self,
        path: str,
        payload,
        send_fd: bool = True,
        unlink_first: bool = False,
        silent: bool = False,
    ):
        self.path = path
        self.unlink_first = unlink_first
        self.silent = silent
        self.done = threading.Event()
        if isinstance(payload, dict):
            payload = json.dumps(payload).encode()
        self.payload = payload
        self.send_fd = send_fd
        self.fd = os.open(os.devnull, os.O_RDONLY)
        self.server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self.server.bind(path)
        self.server.listen(1)
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self):
        conn, _ = self.server.accept()
        with conn:
            if self.unlink_first:
                os.unlink(self.path)
            if self.silent:
                self.done.wait(timeout=10)
            elif self.send_fd:
                socket.send_fds(conn, [self.payload], [self.fd])
            else:
                conn.sendall(self.payload)

    def close(self):
        self.done.set()
        self.thread.join(timeout=5)
        self.server.close()
        os.close(self.fd)


@pytest.fixture
def driver(socket_path):
    drivers = []

    def _start(payload, **kwargs):
        d = FakeDriver(socket_path, payload, **kwargs)
        drivers.append(d)
        return d

    yield _start
    for d in drivers:
        d.close()
