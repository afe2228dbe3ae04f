"""
Provisioner configuration.

The configuration is a plain ``dict`` with kebab-case keys. It is assembled
once per run from, in increasing precedence:

1. :data:`DEFAULTS`
2. a YAML file passed with ``--config``
3. ``SINGLENODE_*`` environment variables (see :data:`ENVIRONMENT`)
4. command line flags

Example YAML file:

.. code:: yaml

    kubernetes-version: 1.23.3
    pod-network-cidr: 10.244.0.0/16
    network-manifest: https://github.com/flannel-io/flannel/releases/latest/download/kube-flannel.yml
    disable-firewall: false
"""
import copy
import os

import yaml

from singlenode import (KUBERNETES_BASE_VERSION, POD_NETWORK_CIDR,
                        CALICO_MANIFEST)
from singlenode.exceptions import ConfigError
from singlenode.util.util import k8s_version_validation, cidr_validation

LATEST = "latest"

DEFAULTS = {
    'kubernetes-version': KUBERNETES_BASE_VERSION,
    'pod-network-cidr': POD_NETWORK_CIDR,
    'network-manifest': CALICO_MANIFEST,
    'dependencies': ['docker'],
    'disable-firewall': True,
    'bootstrap-log': 'kubeadm.log',
    'package-revision': None,
    'apt-repository': None,
    'apt-key-url': None,
    'wait-timeout': 300,
    'kubeconfig-home': None,
    'host-root': '/',
}

ENVIRONMENT = {
    'SINGLENODE_KUBERNETES_VERSION': 'kubernetes-version',
    'SINGLENODE_POD_NETWORK_CIDR': 'pod-network-cidr',
    'SINGLENODE_NETWORK_MANIFEST': 'network-manifest',
}


def read_config_file(path):
    """Read a YAML configuration file.

    Raises:
        ConfigError if the file is missing, unparsable or not a mapping.
    """
    try:
        with open(path, 'r') as stream:
            data = yaml.safe_load(stream)
    except OSError as err:
        raise ConfigError(f"can't read config file {path}: {err}") from err
    except yaml.YAMLError as err:
        raise ConfigError(f"config file {path} is not valid YAML: {err}") \
            from err

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")

    return data


def validate(config):
    """Check the values of a configuration dict.

    Raises:
        ConfigError on the first invalid value.
    """
    unknown = set(config) - set(DEFAULTS)
    if unknown:
        raise ConfigError("unknown configuration keys: %s" %
                          ", ".join(sorted(unknown)))

    version = config['kubernetes-version']
    if version != LATEST and not k8s_version_validation(version):
        raise ConfigError(f"invalid kubernetes-version '{version}', "
                          "expected X.Y.Z or 'latest'")

    if not cidr_validation(config['pod-network-cidr']):
        raise ConfigError("invalid pod-network-cidr "
                          f"'{config['pod-network-cidr']}'")

    if not config['network-manifest']:
        raise ConfigError("network-manifest can't be empty")

    if not isinstance(config['dependencies'], list):
        raise ConfigError("dependencies must be a list of tool names")

    if not isinstance(config['disable-firewall'], bool):
        raise ConfigError("disable-firewall must be true or false, got "
                          f"{config['disable-firewall']!r}")

    try:
        config['wait-timeout'] = int(config['wait-timeout'])
    except (TypeError, ValueError) as err:
        raise ConfigError("wait-timeout must be a number of seconds") from err

    return config


def load_config(path=None, environ=None, overrides=None):
    """Build and validate the configuration for a run.

    Args:
        path (str): Optional YAML configuration file.
        environ (dict): Environment to read ``SINGLENODE_*`` variables from,
            defaults to ``os.environ``.
        overrides (dict): Values from the command line. None values are
            ignored.

    Returns:
        The configuration ``dict``.
    """
    config = copy.deepcopy(DEFAULTS)

    if path:
        config.update(read_config_file(path))

    if environ is None:
        environ = os.environ

    for var, key in ENVIRONMENT.items():
        if environ.get(var):
            config[key] = environ[var]

    for key, val in (overrides or {}).items():
        if val is not None:
            config[key] = val

    # YAML reads 1.23.3 as a string but a bare 1.23 as a float
    config['kubernetes-version'] = str(config['kubernetes-version'] or LATEST)

    return validate(config)
