"""
cli.py
======

misc functions used by the workflows in ``singlenode.workflow``.

Don't use directly
"""
import os
import shutil

import yaml

from singlenode.exceptions import ClusterError, HostError
from singlenode.util.logger import Logger

LOGGER = Logger(__name__)


def current_context(path):
    """Return the current-context of a kubeconfig file, or None."""
    try:
        with open(path) as stream:
            config = yaml.safe_load(stream) or {}
    except (OSError, yaml.YAMLError):
        return None

    if not isinstance(config, dict):
        return None

    return config.get('current-context')


def write_kubeconfig(admin_conf, home, uid=None, gid=None):
    """Copy the admin kubeconfig to ``<home>/.kube/config``.

    Args:
        admin_conf (str): The kubeconfig written by ``kubeadm init``.
        home (str): The home directory of the user who should get it.
        uid (int): If given, the owner of the copied file and directory.
        gid (int): If given, the group of the copied file and directory.

    Returns:
        The path of the written kubeconfig.

    Raises:
        :class:`ClusterError` if ``admin_conf`` does not exist,
        :class:`HostError` if the copy can't be written.
    """
    if not os.path.isfile(admin_conf):
        raise ClusterError(f"{admin_conf} not found, did kubeadm init fail?")

    kube_dir = os.path.join(home, ".kube")
    path = os.path.join(kube_dir, "config")

    if os.path.exists(path):
        LOGGER.warn("Overwriting existing %s", path)

    try:
        os.makedirs(kube_dir, exist_ok=True)
        shutil.copyfile(admin_conf, path)
        os.chmod(path, 0o600)

        if uid is not None and gid is not None:
            for item in (kube_dir, path):
                os.chown(item, uid, gid)
    except OSError as err:
        raise HostError(f"Can't write the kubeconfig {path}: {err}") from err

    LOGGER.success("Your kubeconfig was written to %s (context: %s)",
                   path, current_context(path))
    LOGGER.success("You can use your config with:")
    LOGGER.success("kubectl get nodes --kubeconfig=%s", path)

    return path
