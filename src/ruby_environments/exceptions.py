from __future__ import annotations


class RubyEnvironmentsError(Exception):
    """Base class for all ruby-environments domain errors."""


class ProbeInvocationError(RuntimeError, RubyEnvironmentsError):
    """Raised when the activation probe cannot be spawned or exits with an error."""

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class ProbeTimeoutError(ProbeInvocationError):
    """Raised when the activation probe does not finish in time."""


class ActivationDecodeError(ValueError, RubyEnvironmentsError):
    """Raised when probe output does not contain an activation frame."""


class SettingsLoadError(ValueError, RubyEnvironmentsError):
    """Raised when a settings file cannot be read or parsed."""


class WorkspaceStateError(OSError, RubyEnvironmentsError):
    """Raised when persisted workspace state cannot be read or written."""


class UnknownWorkspaceError(KeyError, RubyEnvironmentsError):
    """Raised when an operation targets a workspace that is not registered."""
