"""
Talk to the freshly initialised cluster through the API server.
"""
import logging
import time
from urllib.request import urlopen

import urllib3
import yaml

from kubernetes import client as k8sclient
from kubernetes.client import api_client
from kubernetes.client.rest import ApiException
from kubernetes.config import kube_config
from kubernetes.utils import create_from_yaml, FailToCreateError

from singlenode.exceptions import ClusterError
from singlenode.util.logger import Logger
from singlenode.util.util import retry

LOGGER = Logger(__name__)

# older releases taint with "master", 1.24 and later with "control-plane"
CONTROL_PLANE_TAINTS = ("node-role.kubernetes.io/master",
                        "node-role.kubernetes.io/control-plane")

CONFLICT = 409


def load_manifest(source):
    """Load the YAML documents of a manifest from a URL or a local file.

    Empty documents are dropped.

    Raises:
        :class:`ClusterError` if the manifest can't be read or parsed.
    """
    try:
        if source.startswith(("http://", "https://")):
            with urlopen(source, timeout=60) as resp:
                text = resp.read().decode("utf-8")
        else:
            with open(source) as fh:
                text = fh.read()
        return [doc for doc in yaml.safe_load_all(text) if doc]
    except (OSError, yaml.YAMLError) as err:
        raise ClusterError(f"Can't load manifest {source}: {err}") from err


def _only_conflicts(error):
    return all(getattr(exc, "status", None) == CONFLICT
               for exc in error.api_exceptions)


class K8S:
    """Interactions with the single node cluster.

    Args:
        config (str): Path of the kubeconfig, usually admin.conf.
    """

    def __init__(self, config):
        self.config = config
        try:
            kube_config.load_kube_config(config_file=config)
        except (OSError, kube_config.ConfigException) as err:
            raise ClusterError(f"Can't load kubeconfig {config}: {err}") \
                from err
        self.api = k8sclient.CoreV1Api()
        self.client = api_client.ApiClient()

    @property
    def is_ready(self):
        """Check if the API server answers.

        Returns:
            True if it's reachable.
        """
        logging.getLogger("urllib3").setLevel(logging.ERROR)
        try:
            k8sclient.CoreApi().get_api_versions()
            return True
        except (urllib3.exceptions.MaxRetryError, ApiException):
            return False
        finally:
            logging.getLogger("urllib3").setLevel(logging.WARNING)

    def wait_for_api(self, timeout=300, interval=5):
        """Block until the API server answers.

        Raises:
            :class:`ClusterError` after ``timeout`` seconds.
        """
        deadline = time.monotonic() + timeout
        while not self.is_ready:
            if time.monotonic() >= deadline:
                raise ClusterError("The API server did not become available "
                                   f"within {timeout} seconds")
            LOGGER.debug("Waiting for the API server ...")
            time.sleep(interval)

    @retry((urllib3.exceptions.MaxRetryError, ApiException), tries=3,
           delay=2, logger=LOGGER.debug)
    def _list_nodes(self):
        return self.api.list_node().items

    def nodes(self):
        """Return the node objects of the cluster."""
        try:
            return self._list_nodes()
        except (urllib3.exceptions.MaxRetryError, ApiException) as err:
            raise ClusterError(f"Can't list nodes: {err}") from err

    def untaint_nodes(self, keys=CONTROL_PLANE_TAINTS):
        """Remove the control plane taints so regular pods are scheduled.

        Nodes without those taints are left alone, so calling this twice is
        harmless.

        Returns:
            The names of the nodes that were changed.
        """
        changed = []
        for node in self.nodes():
            taints = node.spec.taints or []
            keep = [t for t in taints if t.key not in keys]
            if len(keep) == len(taints):
                continue

            body = {"spec": {"taints": [
                {k: v for k, v in (("key", t.key), ("value", t.value),
                                   ("effect", t.effect)) if v is not None}
                for t in keep]}}
            try:
                self.api.patch_node(node.metadata.name, body)
            except ApiException as err:
                raise ClusterError(
                    f"Can't untaint node {node.metadata.name}: {err}") \
                    from err
            LOGGER.success("Node '%s' accepts workloads now",
                           node.metadata.name)
            changed.append(node.metadata.name)

        return changed

    def apply_manifest(self, source, apply_func=create_from_yaml):
        """Create every object of a manifest.

        Objects that already exist are skipped so a second run succeeds.

        Args:
            source (str): URL or path of the manifest.
            apply_func: A callable with the signature of
                :func:`kubernetes.utils.create_from_yaml`.
        """
        docs = load_manifest(source)
        LOGGER.info("Applying %d objects from %s", len(docs), source)
        try:
            apply_func(self.client, yaml_objects=docs, verbose=False)
        except FailToCreateError as err:
            if not _only_conflicts(err):
                raise ClusterError(f"Applying {source} failed: {err}") \
                    from err
            LOGGER.info("Some objects of %s already existed", source)

    def node_status(self, nodename):
        """Return the Ready condition of a node as string, None on error."""
        try:
            resp = self.api.read_node_status(nodename)
        except ApiException as exc:
            LOGGER.debug("API exception: %s", exc)
            return None

        status = [x for x in resp.status.conditions or []
                  if x.type == 'Ready']
        return status[0].status if status else None

    def wait_for_nodes_ready(self, timeout=300, interval=5):
        """Block until every node reports Ready.

        Raises:
            :class:`ClusterError` after ``timeout`` seconds.
        """
        deadline = time.monotonic() + timeout
        while True:
            names = [n.metadata.name for n in self.nodes()]
            pending = [n for n in names if self.node_status(n) != "True"]
            if names and not pending:
                LOGGER.success("Node(s) %s ready", ", ".join(names))
                return
            if time.monotonic() >= deadline:
                raise ClusterError("Node(s) %s not ready after %d seconds" %
                                   (", ".join(pending), timeout))
            LOGGER.debug("Waiting for node(s) %s ...", ", ".join(pending))
            time.sleep(interval)
