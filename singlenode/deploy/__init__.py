"""
singlenode.deploy
-----------------

Cluster lifecycle: ``kubeadm`` delegation in :mod:`singlenode.deploy.kubeadm`
and API server interactions in :mod:`singlenode.deploy.k8s`.
"""
