"""
General purpose utilities
"""
import os
import pwd
import re
import time

from functools import wraps

from netaddr import IPNetwork
from netaddr.core import AddrFormatError


def retry(exceptions, tries=4, delay=3, backoff=2, logger=None):
    """
    Retry calling the decorated function using an exponential backoff.

    Args:
        exceptions: The exception to check. may be a tuple of exceptions to check.
        tries: Number of times to try (not retry) before giving up.
        delay: Initial delay between retries in seconds.
        backoff: Backoff multiplier (e.g. value of 2 will double the delay each retry).
        logger: Logger to use. If None, print.
    """
    def deco_retry(f):  # pylint: disable=invalid-name

        @wraps(f)
        def f_retry(*args, **kwargs):
            mtries, mdelay = tries, delay
            while mtries > 1:
                try:
                    return f(*args, **kwargs)
                except exceptions as e:  # pylint: disable=invalid-name
                    msg = '{}, Retrying in {} seconds...'.format(e,
                                                                 int(mdelay))
                    if logger:
                        logger(msg)
                    else:
                        print(msg)
                    time.sleep(mdelay)
                    mtries -= 1
                    mdelay *= backoff
            return f(*args, **kwargs)

        return f_retry  # true decorator

    return deco_retry


def k8s_version_validation(version):
    """Check a Kubernetes version has the form ``X.Y.Z``.

    Args:
        version (str): The version to check.

    Returns:
        True if valid, False otherwise (including non-strings).
    """
    if not isinstance(version, str):
        return False

    return re.match(r"^\d+\.\d+\.\d+$", version) is not None


def minor_version(version):
    """Return ``(major, minor)`` of a ``X.Y.Z`` version as integers."""
    major, minor = version.split(".")[:2]
    return int(major), int(minor)


def cidr_validation(cidr):
    """Check that ``cidr`` is a network in CIDR notation, e.g. 10.0.0.0/16.

    Returns:
        True if netaddr parses it and it carries a prefix length.
    """
    if not isinstance(cidr, str) or "/" not in cidr:
        return False
    try:
        IPNetwork(cidr)
    except (AddrFormatError, ValueError):
        return False
    return True


def host_path(root, path):
    """Place an absolute host path below ``root``.

    Example:
        >>> host_path("/", "/etc/fstab")
        '/etc/fstab'
        >>> host_path("/tmp/host", "/etc/fstab")
        '/tmp/host/etc/fstab'
    """
    return os.path.join(root, path.lstrip("/"))


def invoking_user():
    """Return ``(home, uid, gid)`` of the user who called sudo.

    Without sudo this is the current user. uid and gid are None unless sudo
    set them, which means ownership should be left as it is.
    """
    sudo_user = os.environ.get("SUDO_USER")
    if sudo_user and sudo_user != "root":
        try:
            entry = pwd.getpwnam(sudo_user)
        except KeyError:
            pass
        else:
            return entry.pw_dir, entry.pw_uid, entry.pw_gid

    return os.path.expanduser("~"), None, None
