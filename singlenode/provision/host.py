"""
Host level settings the kubelet and the pod network depend on.

Every method of :class:`HostConfigurator` can be run again on an already
configured host without changing anything.
"""
import json
import os

from singlenode.exceptions import HostError
from singlenode.util.logger import Logger
from singlenode.util.util import host_path

LOGGER = Logger(__name__)

FSTAB = "/etc/fstab"
MODULES_LOAD_CONF = "/etc/modules-load.d/k8s.conf"
SYSCTL_CONF = "/etc/sysctl.d/k8s.conf"
DOCKER_DAEMON_JSON = "/etc/docker/daemon.json"

NETFILTER_MODULE = "br_netfilter"
SYSCTL_SETTINGS = ("net.bridge.bridge-nf-call-ip6tables = 1",
                   "net.bridge.bridge-nf-call-iptables = 1")
SYSTEMD_CGROUP_DRIVER = "native.cgroupdriver=systemd"


def comment_swap_entries(lines):
    """Comment out active swap entries of an fstab.

    Args:
        lines (list): The lines of the fstab, with line endings.

    Returns:
        A tuple of the new lines and the number of entries commented out.
    """
    changed = 0
    out = []
    for line in lines:
        fields = line.split()
        if fields and not fields[0].startswith("#") and \
                len(fields) >= 3 and fields[2] == "swap":
            line = "#" + line
            changed += 1
        out.append(line)
    return out, changed


def _read(path):
    try:
        with open(path) as fh:
            return fh.read()
    except OSError as err:
        raise HostError(f"Can't read {path}: {err}") from err


def _write(path, content, mode=0o644):
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as fh:
            fh.write(content)
        os.chmod(path, mode)
    except OSError as err:
        raise HostError(f"Can't write {path}: {err}") from err


class HostConfigurator:
    """Apply host configuration through ``shell`` and direct file writes.

    Args:
        shell (:class:`singlenode.util.shell.Shell`)
        config (dict): The provisioner configuration; ``host-root`` is
            prepended to every file path.
    """

    def __init__(self, shell, config):
        self.shell = shell
        self.config = config
        self.root = config['host-root']

    def path(self, path):
        """Return ``path`` below the configured host root."""
        return host_path(self.root, path)

    def disable_swap(self):
        """Turn swap off now and keep it off after a reboot.

        The kubelet refuses to start with swap enabled.
        """
        self.shell.run(["swapoff", "-a"])

        fstab = self.path(FSTAB)
        if not os.path.exists(fstab):
            LOGGER.warn("%s not found, swap entries left untouched", fstab)
            return

        lines, changed = comment_swap_entries(
            _read(fstab).splitlines(keepends=True))
        if changed:
            _write(fstab, "".join(lines), os.stat(fstab).st_mode & 0o777)
            LOGGER.debug("Commented out %d swap entries in %s", changed, fstab)

        LOGGER.info("swap memory disabled")

    def disable_firewall(self):
        """Stop and disable ufw so it can't drop pod network traffic."""
        if not self.config['disable-firewall']:
            LOGGER.warn("Leaving the firewall enabled, make sure the CNI "
                        "traffic is allowed")
            return

        if self.shell.which("ufw") is None:
            LOGGER.info("ufw is not installed, no firewall to disable")
            return

        LOGGER.info("disabling firewall")
        self.shell.run(["systemctl", "stop", "ufw"])
        self.shell.run(["systemctl", "disable", "ufw"])

    def configure_netfilter(self):
        """Let iptables see bridged traffic.

        Loads ``br_netfilter`` now and on every boot and enables the
        ``bridge-nf-call`` sysctls.
        """
        LOGGER.info("configuring netfilter")
        self.shell.run(["modprobe", NETFILTER_MODULE])

        _write(self.path(MODULES_LOAD_CONF), NETFILTER_MODULE + "\n")
        _write(self.path(SYSCTL_CONF), "\n".join(SYSCTL_SETTINGS) + "\n")

        self.shell.run(["sysctl", "--system"])

    def configure_container_runtime(self):
        """Switch docker to the systemd cgroup driver and restart it.

        Keys already present in ``daemon.json`` are kept.
        """
        path = self.path(DOCKER_DAEMON_JSON)
        daemon = {}
        if os.path.exists(path):
            content = _read(path)
            if content.strip():
                try:
                    daemon = json.loads(content)
                except ValueError as err:
                    raise HostError(
                        f"{path} is not valid JSON: {err}") from err

        opts = [opt for opt in daemon.get("exec-opts", [])
                if not opt.startswith("native.cgroupdriver=")]
        opts.append(SYSTEMD_CGROUP_DRIVER)
        daemon["exec-opts"] = opts

        _write(path, json.dumps(daemon, indent=4) + "\n")
        LOGGER.info("docker configured with the systemd cgroup driver")

        self.shell.run(["systemctl", "restart", "docker"])
