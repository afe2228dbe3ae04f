"""
Bring the cluster up and tear it down with ``kubeadm``.

:class:`Cluster` delegates the control plane work to kubeadm and then
adapts the result for a single node: the control plane taint is removed
and a pod network is applied so the node becomes schedulable.
"""
import os
import shutil

from singlenode import ADMIN_CONF
from singlenode.config import LATEST
from singlenode.deploy.k8s import K8S
from singlenode.exceptions import HostError
from singlenode.cli import write_kubeconfig
from singlenode.util.logger import Logger
from singlenode.util.util import host_path, invoking_user

LOGGER = Logger(__name__)

# removed on uninstall, relative to the host root
STATE_PATHS = ("/etc/systemd/system/kubelet.service",
               "/etc/systemd/system/kubelet.service.d",
               "/var/lib/etcd",
               "/etc/kubernetes",
               "/etc/cni/net.d",
               "/opt/cni",
               "/var/lib/kubelet")

IPTABLES_FLUSH = (["iptables", "-F"],
                  ["iptables", "-t", "nat", "-F"],
                  ["iptables", "-t", "mangle", "-F"],
                  ["iptables", "-X"])


def remove_path(path):
    """Remove a file or a directory tree, ignoring it if absent.

    Returns:
        True if something was removed.
    """
    if os.path.islink(path) or os.path.isfile(path):
        os.remove(path)
    elif os.path.isdir(path):
        shutil.rmtree(path)
    else:
        return False
    return True


class Cluster:
    """Lifecycle of the single node cluster.

    Args:
        shell (:class:`singlenode.util.shell.Shell`)
        config (dict): The provisioner configuration.
        k8s_factory: Callable building a :class:`singlenode.deploy.k8s.K8S`
            from a kubeconfig path.
    """

    def __init__(self, shell, config, k8s_factory=K8S):
        self.shell = shell
        self.config = config
        self.root = config['host-root']
        self.k8s_factory = k8s_factory
        #: state paths wipe_state could not remove
        self.leftovers = []

    @property
    def admin_conf(self):
        """Path of the admin kubeconfig written by kubeadm."""
        return host_path(self.root, ADMIN_CONF)

    @property
    def home(self):
        """Home directory of the user receiving the kubeconfig."""
        return self.config['kubeconfig-home'] or invoking_user()[0]

    def init_command(self):
        """Return the ``kubeadm init`` argument vector."""
        cmd = ["kubeadm", "init",
               f"--pod-network-cidr={self.config['pod-network-cidr']}"]
        if self.config['kubernetes-version'] != LATEST:
            cmd.append(
                f"--kubernetes-version={self.config['kubernetes-version']}")
        return cmd

    def init(self):
        """Initialise the control plane and make the node schedulable.

        Returns:
            The path of the kubeconfig handed to the invoking user.
        """
        LOGGER.info("Initialising the cluster, output goes to %s",
                    self.config['bootstrap-log'])
        self.shell.run(self.init_command(),
                       log_file=self.config['bootstrap-log'])

        os.environ["KUBECONFIG"] = self.admin_conf

        timeout = self.config['wait-timeout']
        k8s = self.k8s_factory(self.admin_conf)
        k8s.wait_for_api(timeout=timeout or 300)
        k8s.untaint_nodes()
        k8s.apply_manifest(self.config['network-manifest'])
        if timeout:
            k8s.wait_for_nodes_ready(timeout=timeout)

        uid, gid = None, None
        if not self.config['kubeconfig-home']:
            _, uid, gid = invoking_user()

        return write_kubeconfig(self.admin_conf, self.home, uid, gid)

    def reset(self):
        """Tear down whatever kubeadm set up, if kubeadm is installed."""
        if self.shell.which("kubeadm") is None:
            LOGGER.info("kubeadm not installed, skipping the reset")
            return

        self.shell.run(["kubeadm", "reset", "-f"])
        LOGGER.success("Cluster reset")

    def purge(self, platform):
        """Stop the kubelet and remove the packages through ``platform``."""
        for action in ("stop", "disable"):
            proc = self.shell.run(["systemctl", action, "kubelet.service"],
                                  check=False)
            if proc.returncode != 0:
                LOGGER.debug("systemctl %s kubelet.service exited with %d",
                             action, proc.returncode)

        platform.remove_packages()

    def wipe_state(self):
        """Delete the state kubeadm, the kubelet and the CNI leave behind.

        A path that can't be removed is logged and kept in :attr:`leftovers`,
        the remaining paths are still removed.

        Returns:
            The list of removed paths.
        """
        paths = [host_path(self.root, path) for path in STATE_PATHS]
        paths.insert(2, os.path.join(self.home, ".kube"))

        removed = []
        self.leftovers = []
        for path in paths:
            try:
                if remove_path(path):
                    LOGGER.debug("Removed %s", path)
                    removed.append(path)
            except OSError as err:
                LOGGER.error("Can't remove %s: %s", path, err)
                self.leftovers.append(path)

        self.shell.run(["systemctl", "daemon-reload"], check=False)
        LOGGER.success("Removed %d state paths", len(removed))
        return removed

    def check_leftovers(self):
        """Raise :class:`HostError` if :meth:`wipe_state` left paths behind."""
        if self.leftovers:
            raise HostError("Could not remove " + ", ".join(self.leftovers))

    def flush_iptables(self):
        """Flush every iptables chain and delete the custom ones."""
        for cmd in IPTABLES_FLUSH:
            self.shell.run(cmd)
        LOGGER.success("iptables rules flushed")
