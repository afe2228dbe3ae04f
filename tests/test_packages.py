#  pylint: disable=redefined-outer-name
from urllib.error import URLError

import pytest

from singlenode.exceptions import (PackageInstallError, ExternalCommandError,
                                   HostError)
from singlenode.provision.packages import (AptInstaller, repository, pinned,
                                           KEYRING, LEGACY_REPO,
                                           STABLE_RELEASE_URL)

from .testdata import FakeShell

ARMORED_KEY = b"-----BEGIN PGP PUBLIC KEY BLOCK-----\n\nmQENBF\n" \
    b"-----END PGP PUBLIC KEY BLOCK-----\n"


def test_repository_legacy():
    repo, key, revision = repository("1.23.3")
    assert repo == LEGACY_REPO
    assert key.startswith("https://packages.cloud.google.com/")
    assert revision == "00"


def test_repository_community():
    repo, key, revision = repository("1.28.2")
    assert repo == "https://pkgs.k8s.io/core:/stable:/v1.28/deb/ /"
    assert key == "https://pkgs.k8s.io/core:/stable:/v1.28/deb/Release.key"
    assert revision == "1.1"


def test_repository_overrides():
    config = {'apt-repository': "https://mirror.example.com/k8s/ main",
              'apt-key-url': "https://mirror.example.com/key.gpg",
              'package-revision': "02"}
    assert repository("1.23.3", config) == (
        "https://mirror.example.com/k8s/ main",
        "https://mirror.example.com/key.gpg",
        "02")


def test_pinned():
    assert pinned(["kubelet", "kubeadm"], "1.23.3", "00") == \
        ["kubelet=1.23.3-00", "kubeadm=1.23.3-00"]
    assert pinned(["kubelet"], "latest", "00") == ["kubelet"]


def test_add_repository_binary_key(config, host):
    shell = FakeShell()
    apt = AptInstaller(shell, config, fetch_func=lambda url: b"\x99\x01\x0d")

    apt.add_repository("1.23.3")

    keyring = host / KEYRING.lstrip("/")
    assert keyring.read_bytes() == b"\x99\x01\x0d"
    sources = host / "etc" / "apt" / "sources.list.d" / "kubernetes.list"
    assert sources.read_text() == (
        "deb [signed-by=/usr/share/keyrings/kubernetes-archive-keyring.gpg] "
        "https://apt.kubernetes.io/ kubernetes-xenial main\n")
    assert not shell.ran("gpg")


def test_add_repository_armored_key(config, host):
    shell = FakeShell()
    urls = []

    def fetch(url):
        urls.append(url)
        return ARMORED_KEY

    AptInstaller(shell, config, fetch_func=fetch).add_repository("1.28.2")

    keyring = str(host / KEYRING.lstrip("/"))
    assert urls == ["https://pkgs.k8s.io/core:/stable:/v1.28/deb/Release.key"]
    cmd = ("gpg", "--dearmor", "--yes", "-o", keyring)
    assert shell.ran(*cmd)
    assert shell.stdin[cmd] == ARMORED_KEY.decode()


def test_add_repository_download_fails(config):
    def fetch(url):
        raise URLError("no route to host")

    with pytest.raises(PackageInstallError, match="no route to host"):
        AptInstaller(FakeShell(), config, fetch_func=fetch).add_repository(
            "1.23.3")


def test_install_pinned(config):
    shell = FakeShell()
    AptInstaller(shell, config).install(("kubelet", "kubeadm", "kubectl"),
                                        "1.23.3")

    assert shell.commands == [
        ["apt-get", "update"],
        ["apt-get", "install", "-y", "kubelet=1.23.3-00", "kubeadm=1.23.3-00",
         "kubectl=1.23.3-00"],
        ["apt-mark", "hold", "kubelet", "kubeadm", "kubectl"]]


def test_install_latest(config):
    shell = FakeShell()
    AptInstaller(shell, config).install(("kubelet", "kubeadm", "kubectl"),
                                        "latest")
    assert ["apt-get", "install", "-y", "kubelet", "kubeadm", "kubectl"] in \
        shell.commands


def test_install_fails(config):
    shell = FakeShell(results={
        ("apt-get", "install"): (100, "E: Version '1.23.3-00' for 'kubelet' "
                                      "was not found")})

    with pytest.raises(PackageInstallError) as err:
        AptInstaller(shell, config).install(("kubelet",), "1.23.3")

    assert isinstance(err.value, ExternalCommandError)
    assert err.value.returncode == 100
    assert isinstance(err.value.__cause__, ExternalCommandError)
    # nothing is held after a failed install
    assert not shell.ran("apt-mark")


def test_installed(config):
    def status(cmd):
        if cmd[-1] == "kubeadm":
            return 0, "install ok installed"
        if cmd[-1] == "kubectl":
            return 0, "deinstall ok config-files"
        return 1, "dpkg-query: no packages found matching kubelet"

    shell = FakeShell(results={("dpkg-query",): status})
    apt = AptInstaller(shell, config)
    assert apt.installed(["kubelet", "kubeadm", "kubectl"]) == ["kubeadm"]


def test_remove_nothing_installed(config):
    shell = FakeShell(results={("dpkg-query",): (1, "")})
    assert AptInstaller(shell, config).remove(["kubelet", "kubeadm"]) == []
    assert not shell.ran("apt-get")
    assert not shell.ran("apt-mark")


def test_remove(config):
    shell = FakeShell(results={("dpkg-query",): (0, "install ok installed")})
    AptInstaller(shell, config).remove(["kubelet", "kubeadm"])

    assert shell.commands[2:] == [
        ["apt-mark", "unhold", "kubelet", "kubeadm"],
        ["apt-get", "purge", "-y", "kubelet", "kubeadm"],
        ["apt-get", "autoremove", "-y"]]


def test_resolve_latest(config):
    urls = []

    def fetch(url):
        urls.append(url)
        return b"v1.31.2\n"

    apt = AptInstaller(FakeShell(), config, fetch_func=fetch)

    assert apt.resolve("1.23.3") == "1.23.3"
    assert urls == []
    assert apt.resolve("latest") == "1.31.2"
    assert urls == [STABLE_RELEASE_URL]


def test_resolve_latest_garbage(config):
    apt = AptInstaller(FakeShell(), config,
                       fetch_func=lambda url: b"<html>not found</html>")
    with pytest.raises(PackageInstallError, match="unexpected release"):
        apt.resolve("latest")


def test_add_repository_latest(config, host):
    def fetch(url):
        if url == STABLE_RELEASE_URL:
            return b"v1.31.2\n"
        return b"\x99\x01\x0d"

    AptInstaller(FakeShell(), config, fetch_func=fetch).add_repository(
        "latest")

    sources = host / "etc" / "apt" / "sources.list.d" / "kubernetes.list"
    assert "https://pkgs.k8s.io/core:/stable:/v1.31/deb/ /" in \
        sources.read_text()


def test_add_repository_latest_configured(config, host):
    config['apt-repository'] = "https://mirror.example.com/k8s/ main"
    config['apt-key-url'] = "https://mirror.example.com/key.gpg"
    urls = []

    def fetch(url):
        urls.append(url)
        return b"\x99\x01\x0d"

    AptInstaller(FakeShell(), config, fetch_func=fetch).add_repository(
        "latest")

    assert urls == ["https://mirror.example.com/key.gpg"]


def test_add_repository_unwritable(config, host):
    (host / KEYRING.lstrip("/")).mkdir(parents=True)
    apt = AptInstaller(FakeShell(), config, fetch_func=lambda url: b"\x99")

    with pytest.raises(HostError):
        apt.add_repository("1.23.3")
