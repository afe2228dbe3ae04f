"""
Errors raised by the provisioning steps.

Steps raise, :func:`singlenode.workflow.run` catches :class:`ProvisionError`
once and turns it into the process exit status.
"""
import shlex


class ProvisionError(Exception):
    """Base class of every error that aborts a workflow."""


class PrivilegeError(ProvisionError, PermissionError):
    """The effective user is not root."""


class MissingDependencyError(ProvisionError):
    """A required tool is not on the execution path."""

    def __init__(self, name):
        super().__init__(f"Please install {name}")
        self.name = name


class UnsupportedPlatformError(ProvisionError):
    """The host distribution has no platform provider."""


class ConfigError(ProvisionError):
    """A configuration value is invalid."""


class ClusterError(ProvisionError):
    """The Kubernetes API refused a request or could not be reached."""


class HostError(ProvisionError):
    """A file on the host could not be read, written or removed."""


def format_command(command):
    """Render a command the way it would be typed in a shell."""
    return " ".join(shlex.quote(str(part)) for part in command)


class ExternalCommandError(ProvisionError):
    """A delegated tool exited with a non-zero status.

    Args:
        command (list): The argument vector that was executed.
        returncode (int): The exit status.
        output (str): Captured output, merged stdout and stderr.
    """

    #: number of output lines kept in the message
    TAIL = 10

    def __init__(self, command, returncode, output=None):
        self.command = list(command)
        self.returncode = returncode
        self.output = output
        super().__init__(self._message())

    def _message(self):
        msg = (f"{format_command(self.command)} exited with status "
               f"{self.returncode}")
        if self.output and self.output.strip():
            tail = self.output.strip().splitlines()[-self.TAIL:]
            msg = "\n".join([msg] + tail)
        return msg


class PackageInstallError(ExternalCommandError):
    """The package manager failed."""
