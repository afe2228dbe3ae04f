"""

.. _provision:

singlenode.provision
--------------------

Everything that happens on the host before ``kubeadm init`` runs:

* :mod:`singlenode.provision.preflight` - root and dependency checks
* :mod:`singlenode.provision.platform` - distribution detection and the
  per distribution providers
* :mod:`singlenode.provision.host` - swap, firewall, netfilter and the
  container runtime
* :mod:`singlenode.provision.packages` - the Kubernetes apt repository and
  packages

The steps correspond to the following commands on an Ubuntu host:

.. code:: shell

    swapoff -a
    systemctl stop ufw && systemctl disable ufw
    modprobe br_netfilter && sysctl --system
    systemctl restart docker
    apt-get install -y kubelet=1.23.3-00 kubeadm=1.23.3-00 kubectl=1.23.3-00
    apt-mark hold kubelet kubeadm kubectl

"""
