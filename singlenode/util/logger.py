"""Coloured, level-aware console output for singlenode.

Everything the provisioner tells the operator goes through
:class:`Logger`. Levels follow the ``--verbosity`` flag:

.. code:: shell

    * 0 - quiet (no output)
    * 1 - error
    * 2 - warning
    * 3 - info
    * 4 - debug
"""

import logging
import sys
import time

# pylint: disable=no-name-in-module
from huepy import (bad, red, info as infomsg, yellow, run, grey,
                   good, green, bold)

LOG_LEVELS = list(range(5))
DEFAULT_LOG_LEVEL = 3

_PYTHON_LEVELS = {1: logging.ERROR,
                  2: logging.WARNING,
                  3: logging.INFO,
                  4: logging.DEBUG}

LEVEL_NAMES = {'quiet': 0,
               'error': 1,
               'warning': 2,
               'info': 3,
               'debug': 4}


def get_logger(name):
    """Return a stdlib logger writing plain messages to STDOUT.

    A handler is only attached the first time a name is seen, otherwise
    every lookup would print each message once more.

    Args:
        name (str): The name of the logger.

    Returns:
        A :class:`logging.Logger`.
    """

    log = logging.getLogger(name)
    set_level(log, Logger.LOG_LEVEL)

    if not log.handlers:
        sh = logging.StreamHandler(sys.stdout)
        sh.setFormatter(logging.Formatter("%(message)s"))
        log.addHandler(sh)

    return log


def set_level(logger, level):
    """Map a singlenode verbosity level onto a stdlib logger.

    Args:
        logger: A :class:`logging.Logger`.
        level (int): One of :data:`LOG_LEVELS`.

    Raises:
        ValueError if the level is unsupported.
    """

    if level not in LOG_LEVELS:
        raise ValueError(f"log level {level} is not supported")

    if level == 0:
        logger.disabled = True
        return

    logger.disabled = False
    logger.setLevel(_PYTHON_LEVELS[level])


def parse_level(level):
    """Turn ``"debug"``, ``"4"`` or ``4`` into an integer level.

    Raises:
        ValueError if the level is neither a known name nor an integer.
    """
    try:
        return LEVEL_NAMES[level]
    except KeyError:
        return int(level)


class Singleton(type):
    """Metaclass handing out a single shared instance per class.

    Calling the class again re-runs ``__init__`` on the existing instance,
    so ``Logger(__name__)`` in every module points the shared proxy at the
    caller's logger name while keeping one object around.
    """
    _instances = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instances:
            cls._instances[cls] = super(Singleton, cls).__call__(*args, **kwargs)
        else:
            cls._instances[cls].__init__(*args, **kwargs)

        return cls._instances[cls]


class Logger(metaclass=Singleton):
    """Proxy around :class:`logging.Logger` adding coloured labels.

    Set ``Logger.LOG_LEVEL`` before the first instance is created, or
    assign ``level`` on an instance afterwards.

    Every method accepts ``%``-style arguments.

    Example:
        >>> log = Logger(__name__)
        >>> log.info("swap disabled")
        [~] swap disabled
        >>> log.success("Command %s installed", "docker")
        [+] Command docker installed

    Attributes:
        LOG_LEVEL (int): The log level used across the application.

    Args:
        name (str): The name of the logger.
    """

    LOG_LEVEL = DEFAULT_LOG_LEVEL

    def __init__(self, name):
        self.logger = get_logger(name)

    @property
    def level(self):
        """The Python log level in effect, 0 when output is disabled."""
        if not self.logger:
            return None

        if self.logger.disabled:
            return 0

        return self.logger.level

    @level.setter
    def level(self, level):
        level = parse_level(level)
        set_level(self.logger, level)
        Logger.LOG_LEVEL = level

    def error(self, msg, *args, color=True, **kwargs):
        """Log in red with a ``[-]`` label."""

        if color:
            msg = bad(red(msg))

        self.logger.error(msg, *args, **kwargs)

    def warning(self, msg, *args, color=True, **kwargs):
        """Log in yellow with a ``[!]`` label."""

        if color:
            msg = infomsg(yellow(msg))

        self.logger.warning(msg, *args, **kwargs)

    def warn(self, msg, *args, color=True, **kwargs):
        """Alias of :meth:`warning`."""

        self.warning(msg, *args, **kwargs, color=color)

    def info(self, msg, *args, color=True, **kwargs):
        """Log in grey with a ``[~]`` label."""

        if color:
            msg = run(grey(msg))

        self.logger.info(msg, *args, **kwargs)

    def debug(self, msg, *args, color=True, **kwargs):
        """Log in grey, prefixed with the current timestamp.

        Example:
            >>> log.debug("$ swapoff -a")
            [20220214-101112] $ swapoff -a
        """

        if color:
            now = time.strftime("%Y%m%d-%H%M%S")
            msg = grey(f"[{now}] {msg}")

        self.logger.debug(msg, *args, **kwargs)

    def success(self, msg, *args, color=True, **kwargs):
        """Log a success in green with a ``[+]`` label, on info level."""

        if color:
            msg = good(green(msg))

        self.logger.info(msg, *args, **kwargs)

    def step(self, state, color=True):
        """Announce a workflow state transition, on info level."""

        msg = f"==> {state}"
        if color:
            msg = bold(msg)

        self.logger.info(msg)

