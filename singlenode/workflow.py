"""
Install and Uninstall, the two workflows of the provisioner.

Each workflow is a fixed sequence of states. A step either completes and the
workflow moves on, or raises a :class:`singlenode.exceptions.ProvisionError`
and the workflow stops where it is. Nothing is rolled back.

Install::

    Start -> PreflightChecked -> HostConfigured -> PackagesInstalled
          -> ClusterInitialized -> Done

Uninstall::

    Start -> ClusterReset -> PackagesPurged -> StateWiped
          -> FirewallFlushed -> Done
"""
from singlenode.deploy.kubeadm import Cluster
from singlenode.exceptions import ProvisionError
from singlenode.provision import preflight
from singlenode.provision.host import HostConfigurator
from singlenode.provision.packages import APT_ENV
from singlenode.provision.platform import detect_platform
from singlenode.util.logger import Logger
from singlenode.util.shell import Shell

LOGGER = Logger(__name__)

START = "Start"
DONE = "Done"

INSTALL = "install"
UNINSTALL = "uninstall"


class Workflow:
    """Base class keeping track of the state a workflow reached.

    Args:
        config (dict): The provisioner configuration.
        shell (:class:`singlenode.util.shell.Shell`): Runs the commands,
            a new one is created if omitted.
        platform_factory: Callable returning the platform provider for
            ``(shell, config)``, defaults to detecting it from the host.
        cluster_factory: Callable returning a
            :class:`singlenode.deploy.kubeadm.Cluster` for ``(shell, config)``.
    """

    #: the states after Start, in order
    STATES = ()

    def __init__(self, config, shell=None, platform_factory=detect_platform,
                 cluster_factory=Cluster):
        self.config = config
        self.shell = shell or Shell(env=APT_ENV)
        self.platform_factory = platform_factory
        self.cluster = cluster_factory(self.shell, config)
        self.host = HostConfigurator(self.shell, config)
        self.state = START
        self.history = [START]

    def advance(self, state):
        """Move to ``state``, which must be the next one in :data:`STATES`."""
        expected = self.STATES[len(self.history) - 1]
        if state != expected:
            raise RuntimeError(f"Can't go from {self.state} to {state}, "
                               f"expected {expected}")
        self.state = state
        self.history.append(state)
        LOGGER.step(state)

    def run(self):
        """Execute every step of the workflow."""
        raise NotImplementedError


class Install(Workflow):
    """Bootstrap a single node cluster on this host."""

    STATES = ("PreflightChecked", "HostConfigured", "PackagesInstalled",
              "ClusterInitialized", DONE)

    #: path of the kubeconfig handed to the user, set once the cluster is up
    kubeconfig = None

    def run(self):
        # the platform is detected before anything on the host changes
        platform = self.platform_factory(self.shell, self.config)
        preflight.check(self.shell, self.config, platform)
        self.advance("PreflightChecked")

        self.host.disable_swap()
        self.host.disable_firewall()
        self.host.configure_netfilter()
        platform.configure_container_runtime()
        self.advance("HostConfigured")

        platform.install_packages(self.config['kubernetes-version'])
        self.advance("PackagesInstalled")

        self.kubeconfig = self.cluster.init()
        self.advance("ClusterInitialized")

        self.advance(DONE)
        LOGGER.success("Kubernetes %s is running on this node",
                       self.config['kubernetes-version'])


class Uninstall(Workflow):
    """Remove the cluster, its packages and its state from this host.

    Works on a host where Install never ran or stopped half way. State
    paths that can't be removed don't stop the iptables flush, the
    workflow fails after it.
    """

    STATES = ("ClusterReset", "PackagesPurged", "StateWiped",
              "FirewallFlushed", DONE)

    def run(self):
        preflight.running_as_root()
        platform = self.platform_factory(self.shell, self.config)

        self.cluster.reset()
        self.advance("ClusterReset")

        self.cluster.purge(platform)
        self.advance("PackagesPurged")

        self.cluster.wipe_state()
        self.advance("StateWiped")

        self.cluster.flush_iptables()
        self.advance("FirewallFlushed")

        self.cluster.check_leftovers()

        self.advance(DONE)
        LOGGER.success("Kubernetes was removed from this node")


WORKFLOWS = {INSTALL: Install, UNINSTALL: Uninstall}


def run(mode, config, **kwargs):
    """Run the workflow for ``mode`` and return the process exit status.

    Args:
        mode (str): :data:`INSTALL` or :data:`UNINSTALL`.
        config (dict): The provisioner configuration.
        kwargs: Passed on to the workflow class.

    Returns:
        0 if the workflow completed, 1 if a step failed.
    """
    workflow = WORKFLOWS[mode](config, **kwargs)
    try:
        workflow.run()
    except ProvisionError as err:
        LOGGER.error("Error: %s", err)
        LOGGER.error("Stopped after state '%s', the host may be partially "
                     "modified", workflow.state)
        return 1

    return 0
