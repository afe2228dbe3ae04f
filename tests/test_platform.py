#  pylint: disable=redefined-outer-name
import pytest

from singlenode.exceptions import UnsupportedPlatformError
from singlenode.provision.platform import (os_type, parse_release_name,
                                           get_platform, detect_platform,
                                           Ubuntu)

from .testdata import FakeShell


def test_parse_release_name():
    assert parse_release_name('NAME="Ubuntu"\nID=ubuntu') == "Ubuntu"
    assert parse_release_name("NAME='Debian GNU/Linux'") == "Debian GNU/Linux"
    assert parse_release_name("NAME=Fedora Linux") == "Fedora Linux"
    assert parse_release_name('PRETTY_NAME="Ubuntu 20.04"') is None
    assert parse_release_name("") is None


def test_os_type(host):
    assert os_type(str(host)) == "Ubuntu"


def test_os_type_reads_files_in_order(host):
    (host / "etc" / "lsb-release").write_text("DISTRIB_ID=Ubuntu\n")
    (host / "etc" / "centos-release").write_text("CentOS Linux release 7\n")
    (host / "etc" / "os-release").write_text('NAME="Ubuntu"\n')
    assert os_type(str(host)) == "Ubuntu"


def test_os_type_without_release_files(tmp_path):
    (tmp_path / "etc").mkdir()
    with pytest.raises(UnsupportedPlatformError):
        os_type(str(tmp_path))


@pytest.mark.parametrize("name", ["Ubuntu", "Ubuntu 20.04", "Ubuntu 22.04.1 LTS"])
def test_ubuntu_is_supported(config, name):
    platform = get_platform(name, FakeShell(), config)
    assert isinstance(platform, Ubuntu)


@pytest.mark.parametrize("name", ["Debian GNU/Linux", "CentOS Linux",
                                  "ubuntu", "UBUNTU", "Fedora Linux", ""])
def test_other_names_are_unsupported(config, name):
    with pytest.raises(UnsupportedPlatformError):
        get_platform(name, FakeShell(), config)


def test_detect_platform(host, config):
    assert isinstance(detect_platform(FakeShell(), config), Ubuntu)

    (host / "etc" / "os-release").write_text('NAME="Arch Linux"\n')
    with pytest.raises(UnsupportedPlatformError, match="Arch Linux"):
        detect_platform(FakeShell(), config)


def test_ubuntu_install_packages(config):
    shell = FakeShell()
    platform = Ubuntu(shell, config, fetch_func=lambda url: b"\x99binary-key")

    platform.install_packages("1.23.3")

    assert shell.index("apt-get", "install", "-y", "apt-transport-https") < \
        shell.index("apt-get", "install", "-y", "kubelet=1.23.3-00")
    assert shell.ran("apt-mark", "hold", "kubelet", "kubeadm", "kubectl")


def test_ubuntu_removes_cni_package_too(config):
    shell = FakeShell(results={
        ("dpkg-query",): (0, "install ok installed")})
    platform = Ubuntu(shell, config)

    assert platform.remove_packages() == ["kubelet", "kubeadm", "kubectl",
                                          "kubernetes-cni"]
