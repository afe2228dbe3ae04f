import pytest

from singlenode import KUBERNETES_BASE_VERSION, POD_NETWORK_CIDR
from singlenode.config import load_config, read_config_file, DEFAULTS
from singlenode.exceptions import ConfigError


def test_defaults():
    config = load_config(environ={})
    assert config['kubernetes-version'] == KUBERNETES_BASE_VERSION
    assert config['pod-network-cidr'] == POD_NETWORK_CIDR
    assert config['dependencies'] == ['docker']
    assert config['host-root'] == '/'


def test_defaults_are_not_shared():
    config = load_config(environ={})
    config['dependencies'].append('curl')
    assert DEFAULTS['dependencies'] == ['docker']


def test_precedence(tmp_path):
    path = tmp_path / "singlenode.yml"
    path.write_text("kubernetes-version: 1.22.1\n"
                    "pod-network-cidr: 10.10.0.0/16\n"
                    "disable-firewall: false\n")

    config = load_config(str(path), environ={})
    assert config['kubernetes-version'] == "1.22.1"
    assert config['pod-network-cidr'] == "10.10.0.0/16"
    assert config['disable-firewall'] is False

    env = {'SINGLENODE_POD_NETWORK_CIDR': "10.20.0.0/16",
           'SINGLENODE_KUBERNETES_VERSION': "1.21.0"}
    config = load_config(str(path), environ=env)
    assert config['pod-network-cidr'] == "10.20.0.0/16"
    assert config['kubernetes-version'] == "1.21.0"

    config = load_config(str(path), environ=env,
                         overrides={'pod-network-cidr': "10.30.0.0/16",
                                    'kubernetes-version': None})
    assert config['pod-network-cidr'] == "10.30.0.0/16"
    assert config['kubernetes-version'] == "1.21.0"


def test_latest_version():
    config = load_config(environ={},
                         overrides={'kubernetes-version': 'latest'})
    assert config['kubernetes-version'] == 'latest'


@pytest.mark.parametrize("overrides", [
    {'kubernetes-version': '1.23'},
    {'kubernetes-version': 'v1.23.3'},
    {'pod-network-cidr': '192.168.0.0'},
    {'pod-network-cidr': 'everything'},
    {'network-manifest': ''},
    {'wait-timeout': 'soon'},
    {'disable-firewall': 'false'},
    {'disable-firewall': 0},
])
def test_invalid_values(overrides):
    with pytest.raises(ConfigError):
        load_config(environ={}, overrides=overrides)


def test_unknown_key(tmp_path):
    path = tmp_path / "singlenode.yml"
    path.write_text("cluster-name: test\n")
    with pytest.raises(ConfigError, match="cluster-name"):
        load_config(str(path), environ={})


def test_float_version_from_yaml(tmp_path):
    path = tmp_path / "singlenode.yml"
    path.write_text("kubernetes-version: 1.23\n")
    with pytest.raises(ConfigError):
        load_config(str(path), environ={})


def test_read_config_file_errors(tmp_path):
    with pytest.raises(ConfigError):
        read_config_file(str(tmp_path / "missing.yml"))

    broken = tmp_path / "broken.yml"
    broken.write_text("kubernetes-version: [1.23.3\n")
    with pytest.raises(ConfigError):
        read_config_file(str(broken))

    listing = tmp_path / "list.yml"
    listing.write_text("- a\n- b\n")
    with pytest.raises(ConfigError):
        read_config_file(str(listing))

    empty = tmp_path / "empty.yml"
    empty.write_text("")
    assert read_config_file(str(empty)) == {}


def test_quoted_disable_firewall(tmp_path):
    path = tmp_path / "singlenode.yml"
    path.write_text('disable-firewall: "false"\n')
    with pytest.raises(ConfigError, match="disable-firewall"):
        load_config(str(path), environ={})

    path.write_text("disable-firewall: false\n")
    assert load_config(str(path), environ={})['disable-firewall'] is False
