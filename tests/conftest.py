"""
Shared fixtures: a shell that records commands instead of running them and
a throw-away host root in place of ``/``.
"""
#  pylint: disable=redefined-outer-name
import os

import pytest

from singlenode.config import load_config
from singlenode.util.logger import Logger, DEFAULT_LOG_LEVEL

from .testdata import FakeShell, UBUNTU_RELEASE, FSTAB


@pytest.fixture(autouse=True)
def reset_log_level():
    yield
    Logger.LOG_LEVEL = DEFAULT_LOG_LEVEL
    Logger("singlenode").level = DEFAULT_LOG_LEVEL


@pytest.fixture
def shell():
    return FakeShell()


@pytest.fixture
def host(tmp_path):
    """A host root with an Ubuntu release file and an fstab with swap."""
    root = tmp_path / "host"
    (root / "etc").mkdir(parents=True)
    (root / "etc" / "os-release").write_text(UBUNTU_RELEASE)
    (root / "etc" / "fstab").write_text(FSTAB)
    return root


@pytest.fixture
def home(tmp_path):
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def config(host, home, tmp_path):
    return load_config(environ={}, overrides={
        'host-root': str(host),
        'kubeconfig-home': str(home),
        'bootstrap-log': str(tmp_path / "kubeadm.log"),
        'network-manifest': str(tmp_path / "calico.yaml"),
    })


@pytest.fixture
def root(monkeypatch):
    """Pretend to run as root."""
    monkeypatch.setattr(os, "geteuid", lambda: 0)
