"""
Run external tools and turn non-zero exits into exceptions.

Every command the provisioner issues goes through :class:`Shell`, so tests
can swap in a recorder by overriding :meth:`Shell._execute` and
:meth:`Shell.which`.
"""
import os
import shutil
import subprocess as sp

from singlenode.exceptions import (ExternalCommandError, HostError,
                                   format_command)
from singlenode.util.logger import Logger

LOGGER = Logger(__name__)


class Shell:
    """Execute commands, blocking until each one finishes.

    Args:
        env (dict): Extra environment variables for every command.
    """

    def __init__(self, env=None):
        self.env = dict(env or {})

    def which(self, name):  # pylint: disable=no-self-use
        """Return the full path of ``name`` or None if it isn't installed."""
        return shutil.which(name)

    def run(self, command, check=True, stdin=None, log_file=None):
        """Run a command and wait for it.

        stdout and stderr are merged. Each output line is logged at debug
        level and, if ``log_file`` is given, written to that file as it
        arrives, replacing earlier content.

        Args:
            command (list): The argument vector.
            check (bool): Raise on a non-zero exit status.
            stdin (str): Text fed to the command's standard input.
            log_file (str): Path of a file receiving a copy of the output.

        Returns:
            A :class:`subprocess.CompletedProcess` with ``stdout`` set.

        Raises:
            :class:`singlenode.exceptions.ExternalCommandError` if
            ``check`` is set and the command fails,
            :class:`singlenode.exceptions.HostError` if ``log_file`` can't
            be opened.
        """
        LOGGER.debug("$ %s", format_command(command))

        if log_file:
            try:
                fh = open(log_file, "w")  # pylint: disable=consider-using-with
            except OSError as err:
                raise HostError(f"Can't write {log_file}: {err}") from err
            with fh:
                returncode, output = self._execute(
                    command, stdin, lambda line: _tee(fh, line))
        else:
            returncode, output = self._execute(command, stdin,
                                               _log_line)

        if check and returncode != 0:
            raise ExternalCommandError(command, returncode, output)

        return sp.CompletedProcess(command, returncode, stdout=output)

    def _execute(self, command, stdin, on_line):
        env = os.environ.copy()
        env.update(self.env)
        try:
            proc = sp.Popen(command,
                            stdin=sp.PIPE if stdin is not None else sp.DEVNULL,
                            stdout=sp.PIPE,
                            stderr=sp.STDOUT,
                            env=env,
                            encoding="utf-8",
                            errors="replace")
        except FileNotFoundError:
            return 127, f"{command[0]}: command not found\n"
        except PermissionError:
            return 126, f"{command[0]}: permission denied\n"

        if stdin is not None:
            proc.stdin.write(stdin)
            proc.stdin.close()

        lines = []
        for line in proc.stdout:
            lines.append(line)
            on_line(line)
        proc.stdout.close()

        return proc.wait(), "".join(lines)


def _log_line(line):
    LOGGER.debug(line.rstrip("\n"), color=False)


def _tee(fh, line):
    fh.write(line)
    fh.flush()
    _log_line(line)
