"""
Checks run before the host is touched.
"""
import os

from singlenode.exceptions import PrivilegeError, MissingDependencyError
from singlenode.util.logger import Logger

LOGGER = Logger(__name__)


def running_as_root():
    """Raise :class:`PrivilegeError` unless the effective UID is 0."""
    if os.geteuid() != 0:
        raise PrivilegeError("Please run as root/sudo")


def exists(shell, name):
    """Make sure ``name`` can be found on the PATH.

    Args:
        shell (:class:`singlenode.util.shell.Shell`): used for the lookup.
        name (str): The executable to look for.

    Raises:
        :class:`MissingDependencyError` if it can't be found.
    """
    if shell.which(name) is None:
        raise MissingDependencyError(name)

    LOGGER.success("Command %s installed", name)


def check(shell, config, platform):
    """Run every pre-flight check for an installation.

    Args:
        shell (:class:`singlenode.util.shell.Shell`)
        config (dict): The provisioner configuration.
        platform (:class:`singlenode.provision.platform.Platform`): The
            detected host platform.
    """
    running_as_root()

    for name in config['dependencies']:
        exists(shell, name)

    for name in platform.required_tools:
        exists(shell, name)
