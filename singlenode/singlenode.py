"""
singlenode
==========

The main entry point for installing and removing a single node Kubernetes
cluster. Don't use it directly, instead install the package with setup.py.
It automatically creates an executable in your path.

"""
import argparse
import sys

from singlenode import __version__
from singlenode.config import load_config
from singlenode.exceptions import ConfigError
from singlenode.util.logger import Logger, LOG_LEVELS, parse_level
from singlenode import workflow

LOGGER = Logger(__name__)

DESCRIPTION = "This script install and uninstall k8s on a Single Node"


def _verbosity(value):
    try:
        level = parse_level(value)
    except ValueError:
        level = None
    if level not in LOG_LEVELS:
        raise argparse.ArgumentTypeError(f"invalid verbosity '{value}'")
    return level


def get_parser():
    """Build the command line parser."""
    parser = argparse.ArgumentParser(prog="singlenode",
                                     description=DESCRIPTION)

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("-i", "--install", action="store_const",
                      dest="mode", const=workflow.INSTALL,
                      help="Install k8s.")
    mode.add_argument("-r", "--uninstall", action="store_const",
                      dest="mode", const=workflow.UNINSTALL,
                      help="Uninstall k8s.")

    parser.add_argument("-c", "--config", metavar="FILE",
                        help="YAML configuration file")
    parser.add_argument("--kubernetes-version", metavar="VERSION",
                        help="Kubernetes version to install, X.Y.Z or "
                             "'latest'")
    parser.add_argument("--pod-network-cidr", metavar="CIDR",
                        help="pod network passed to kubeadm init")
    parser.add_argument("--network-manifest", metavar="URL_OR_PATH",
                        help="CNI manifest applied after kubeadm init")

    verbosity_help = "".join([
        "set the verbosity level (",
        "0 = quiet, ",
        "1 = error, ",
        "2 = warning, ",
        "3 = info, ",
        "4 = debug)"])
    parser.add_argument("-v", "--verbosity",
                        help=verbosity_help,
                        type=_verbosity,
                        default=3)
    parser.add_argument("--version", action="version",
                        version="%(prog)s version: " + __version__)

    return parser


def main(argv=None, **kwargs):
    """
    run and execute singlenode

    Args:
        argv (list): Command line arguments, defaults to ``sys.argv[1:]``.
        kwargs: Passed on to :func:`singlenode.workflow.run`.

    Returns:
        The exit status.
    """
    parser = get_parser()
    args = parser.parse_args(argv)

    LOGGER.level = args.verbosity

    if args.mode is None:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config, overrides={
            'kubernetes-version': args.kubernetes_version,
            'pod-network-cidr': args.pod_network_cidr,
            'network-manifest': args.network_manifest})
    except ConfigError as err:
        LOGGER.error(f"Error: {err}")
        return 1

    if args.mode == workflow.INSTALL:
        LOGGER.info("Installing k8s")
    else:
        LOGGER.info("Uninstalling k8s")

    return workflow.run(args.mode, config, **kwargs)


def run():
    """console script entry point"""
    sys.exit(main())
