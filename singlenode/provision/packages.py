"""
Install and remove the Kubernetes packages with apt.

Two upstream repositories are known:

* the legacy Google hosted ``apt.kubernetes.io`` repository, which carries
  releases before 1.24 with the ``-00`` Debian revision
* the community owned ``pkgs.k8s.io`` repositories, one per minor release,
  starting with 1.24 and using the ``-1.1`` revision

The repository, its key and the revision can all be set in the
configuration for mirrors or other releases. ``latest`` installs the
unpinned packages from the repository of the current stable release, as
published at :data:`STABLE_RELEASE_URL`.
"""
import os

from urllib.request import urlopen
from urllib.error import URLError

from singlenode.config import LATEST
from singlenode.exceptions import (ExternalCommandError, PackageInstallError,
                                   HostError)
from singlenode.util.logger import Logger
from singlenode.util.util import (host_path, minor_version,
                                  k8s_version_validation)

LOGGER = Logger(__name__)

KEYRING = "/usr/share/keyrings/kubernetes-archive-keyring.gpg"
SOURCES_LIST = "/etc/apt/sources.list.d/kubernetes.list"

LEGACY_REPO = "https://apt.kubernetes.io/ kubernetes-xenial main"
LEGACY_KEY = "https://packages.cloud.google.com/apt/doc/apt-key.gpg"
LEGACY_REVISION = "00"

COMMUNITY_REPO = "https://pkgs.k8s.io/core:/stable:/v{major}.{minor}/deb/ /"
COMMUNITY_KEY = \
    "https://pkgs.k8s.io/core:/stable:/v{major}.{minor}/deb/Release.key"
COMMUNITY_REVISION = "1.1"
# names the current stable release, e.g. "v1.31.2"
STABLE_RELEASE_URL = "https://dl.k8s.io/release/stable.txt"

PREREQUISITES = ("apt-transport-https", "ca-certificates", "curl", "gpg")

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def repository(version, config=None):
    """Return the repository line, key URL and package revision for a version.

    Args:
        version (str): ``X.Y.Z``, see :meth:`AptInstaller.resolve` for
            ``latest``.
        config (dict): Optional configuration with ``apt-repository``,
            ``apt-key-url`` and ``package-revision`` overrides.

    Returns:
        A tuple ``(repo, key_url, revision)``.
    """
    config = config or {}
    major, minor = minor_version(version)

    if (major, minor) < (1, 24):
        repo, key, revision = LEGACY_REPO, LEGACY_KEY, LEGACY_REVISION
    else:
        repo = COMMUNITY_REPO.format(major=major, minor=minor)
        key = COMMUNITY_KEY.format(major=major, minor=minor)
        revision = COMMUNITY_REVISION

    return (config.get('apt-repository') or repo,
            config.get('apt-key-url') or key,
            config.get('package-revision') or revision)


def pinned(packages, version, revision):
    """Add ``=<version>-<revision>`` to each package unless version is latest.

    Example:
        >>> pinned(["kubeadm"], "1.23.3", "00")
        ['kubeadm=1.23.3-00']
    """
    if version == LATEST:
        return list(packages)
    return [f"{pkg}={version}-{revision}" for pkg in packages]


def fetch(url, timeout=30):
    """Download ``url`` and return the body as bytes."""
    with urlopen(url, timeout=timeout) as resp:
        return resp.read()


class AptInstaller:
    """Drive ``apt-get``, ``apt-mark`` and ``dpkg-query``.

    Args:
        shell (:class:`singlenode.util.shell.Shell`)
        config (dict): The provisioner configuration.
        fetch_func: A callable returning the body of a URL, swappable for
            tests.
    """

    def __init__(self, shell, config, fetch_func=fetch):
        self.shell = shell
        self.config = config
        self.root = config['host-root']
        self.fetch = fetch_func

    def _apt(self, command, **kwargs):
        try:
            return self.shell.run(command, **kwargs)
        except ExternalCommandError as exc:
            raise PackageInstallError(exc.command, exc.returncode,
                                      exc.output) from exc

    def _download(self, url):
        try:
            return self.fetch(url)
        except (URLError, OSError) as err:
            raise PackageInstallError(["download", url], 1, str(err)) \
                from err

    def resolve(self, version):
        """Return ``version``, or the current stable release for ``latest``.

        The stable release is read from :data:`STABLE_RELEASE_URL`, the
        same source ``kubeadm init`` uses when no version is given.
        """
        if version != LATEST:
            return version

        text = self._download(STABLE_RELEASE_URL).decode().strip()
        release = text[1:] if text.startswith("v") else text
        if not k8s_version_validation(release):
            raise PackageInstallError(["download", STABLE_RELEASE_URL], 1,
                                      f"unexpected release '{text}'")
        LOGGER.info("Latest stable Kubernetes release is %s", release)
        return release

    def add_repository(self, version):
        """Register the Kubernetes apt repository and its signing key.

        For ``latest`` the repository of the current stable release is
        used unless ``apt-repository`` and ``apt-key-url`` are configured.
        """
        if version == LATEST and self.config.get('apt-repository') and \
                self.config.get('apt-key-url'):
            repo, key_url = (self.config['apt-repository'],
                             self.config['apt-key-url'])
        else:
            repo, key_url, _ = repository(self.resolve(version), self.config)

        self._apt(["apt-get", "update"])
        self._apt(["apt-get", "install", "-y"] + list(PREREQUISITES))

        LOGGER.info("Downloading the repository key from %s", key_url)
        key = self._download(key_url)

        keyring = host_path(self.root, KEYRING)
        sources = host_path(self.root, SOURCES_LIST)
        try:
            os.makedirs(os.path.dirname(keyring), exist_ok=True)
            if key.lstrip().startswith(b"-----BEGIN PGP"):
                self._apt(["gpg", "--dearmor", "--yes", "-o", keyring],
                          stdin=key.decode())
            else:
                with open(keyring, "wb") as fh:
                    fh.write(key)

            os.makedirs(os.path.dirname(sources), exist_ok=True)
            with open(sources, "w") as fh:
                fh.write(f"deb [signed-by={KEYRING}] {repo}\n")
        except OSError as err:
            raise HostError(f"Can't write the apt repository: {err}") \
                from err

        LOGGER.success("Added the Kubernetes repository %s", repo)

    def install(self, packages, version):
        """Install ``packages`` pinned to ``version`` and hold them.

        ``latest`` installs whatever the configured repository carries.
        """
        revision = None
        if version != LATEST:
            _, _, revision = repository(version, self.config)

        self._apt(["apt-get", "update"])
        self._apt(["apt-get", "install", "-y"] +
                  pinned(packages, version, revision))
        self._apt(["apt-mark", "hold"] + list(packages))

        LOGGER.success("Installed %s (%s)", " ".join(packages), version)

    def installed(self, packages):
        """Return the subset of ``packages`` dpkg reports as installed."""
        found = []
        for pkg in packages:
            proc = self.shell.run(
                ["dpkg-query", "-W", "-f=${Status}", pkg], check=False)
            if proc.returncode == 0 and "install ok installed" in proc.stdout:
                found.append(pkg)
        return found

    def remove(self, packages):
        """Unhold and purge whichever of ``packages`` are installed.

        Returns:
            The list of packages that were purged.
        """
        packages = self.installed(packages)
        if not packages:
            LOGGER.info("No Kubernetes packages installed")
            return []

        self._apt(["apt-mark", "unhold"] + packages)
        self._apt(["apt-get", "purge", "-y"] + packages)
        self._apt(["apt-get", "autoremove", "-y"])

        LOGGER.success("Purged %s", " ".join(packages))
        return packages
