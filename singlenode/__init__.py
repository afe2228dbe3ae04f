# pylint: disable=missing-docstring
from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version('singlenode')
except PackageNotFoundError:
    __version__ = '0.1.0'

# Defining some constants
KUBERNETES_BASE_VERSION = "1.23.3"
POD_NETWORK_CIDR = "192.168.0.0/16"
CALICO_MANIFEST = ("https://raw.githubusercontent.com/projectcalico/calico/"
                   "v3.26.1/manifests/calico.yaml")
ADMIN_CONF = "/etc/kubernetes/admin.conf"
KUBE_PACKAGES = ("kubelet", "kubeadm", "kubectl")
