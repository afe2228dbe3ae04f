"""
Detect the host distribution and pick the matching platform provider.

A provider bundles everything that differs between distribution families:
the package manager, the container runtime setup and the tools that must
be present up front. Only Ubuntu is supported; adding a family means adding
a :class:`Platform` subclass to :data:`PLATFORMS`.
"""
import glob

from singlenode import KUBE_PACKAGES
from singlenode.exceptions import UnsupportedPlatformError
from singlenode.provision.host import HostConfigurator
from singlenode.provision.packages import AptInstaller
from singlenode.util.logger import Logger
from singlenode.util.util import host_path

LOGGER = Logger(__name__)

RELEASE_FILES = "/etc/*-release"


def parse_release_name(text):
    """Return the ``NAME`` field of an os-release style file, or None.

    Example:
        >>> parse_release_name('NAME="Ubuntu"\\nVERSION="20.04.4 LTS"')
        'Ubuntu'
    """
    for line in text.splitlines():
        line = line.strip()
        if line.startswith("NAME="):
            return line[len("NAME="):].strip().strip('"\'')
    return None


def os_type(root="/"):
    """Read the distribution name from the release files below ``root``.

    Raises:
        :class:`UnsupportedPlatformError` if no release file names the
        distribution.
    """
    for path in sorted(glob.glob(host_path(root, RELEASE_FILES))):
        try:
            with open(path) as fh:
                name = parse_release_name(fh.read())
        except OSError as err:
            LOGGER.debug("Skipping %s: %s", path, err)
            continue
        if name:
            return name

    raise UnsupportedPlatformError(
        "Can't determine the operating system, no NAME in "
        f"{host_path(root, RELEASE_FILES)}")


class Platform:
    """Base class of the distribution specific providers.

    Args:
        shell (:class:`singlenode.util.shell.Shell`)
        config (dict): The provisioner configuration.
    """

    #: human readable family name
    name = None
    #: tools checked during pre-flight
    required_tools = ()
    #: every package purged on uninstall
    packages = KUBE_PACKAGES

    def __init__(self, shell, config):
        self.shell = shell
        self.config = config

    @classmethod
    def matches(cls, os_name):
        """Return True if this provider handles ``os_name``."""
        raise NotImplementedError

    def configure_container_runtime(self):
        """Prepare the container runtime for the kubelet."""
        raise NotImplementedError

    def install_packages(self, version):
        """Install kubelet, kubeadm and kubectl at ``version``."""
        raise NotImplementedError

    def remove_packages(self):
        """Remove every Kubernetes package, tolerating missing ones."""
        raise NotImplementedError


class Ubuntu(Platform):
    """Ubuntu with docker and the upstream Kubernetes apt repository."""

    name = "Ubuntu"
    required_tools = ("apt-get", "apt-mark", "dpkg-query", "systemctl")
    packages = KUBE_PACKAGES + ("kubernetes-cni",)

    def __init__(self, shell, config, fetch_func=None):
        super().__init__(shell, config)
        kwargs = {'fetch_func': fetch_func} if fetch_func else {}
        self.apt = AptInstaller(shell, config, **kwargs)
        self.host = HostConfigurator(shell, config)

    @classmethod
    def matches(cls, os_name):
        return "Ubuntu" in os_name

    def configure_container_runtime(self):
        self.host.configure_container_runtime()

    def install_packages(self, version):
        self.apt.add_repository(version)
        self.apt.install(KUBE_PACKAGES, version)

    def remove_packages(self):
        return self.apt.remove(self.packages)


PLATFORMS = [Ubuntu]


def get_platform(os_name, shell, config, **kwargs):
    """Return an instance of the provider responsible for ``os_name``.

    Raises:
        :class:`UnsupportedPlatformError` if no provider matches.
    """
    for klass in PLATFORMS:
        if klass.matches(os_name):
            LOGGER.info("Detected %s", os_name)
            return klass(shell, config, **kwargs)

    raise UnsupportedPlatformError(f"Unsupported platform: {os_name}")


def detect_platform(shell, config, **kwargs):
    """Read the host's release files and return its provider."""
    return get_platform(os_type(config['host-root']), shell, config,
                        **kwargs)
