"""Fatal provisioning conditions.

Every error here ends the run with exit status 1. None is retried; the user
re-runs after remediation, which ``hint`` describes.
"""

from __future__ import annotations

from collections.abc import Sequence


class ProvisioningError(RuntimeError):
    """Base class for all fatal provisioning conditions."""

    hint: str = ""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        if hint is not None:
            self.hint = hint


class UnsupportedPlatformError(ProvisioningError):
    """The host OS is neither macOS nor Linux."""

    hint = "Run on macOS or Linux (Windows users: run inside WSL)."


class MissingPackageManagerError(ProvisioningError):
    """A tool must be installed but no usable package manager exists."""

    hint = "Install the missing tools manually and re-run."


class MissingDependencyError(ProvisioningError):
    """A required tool is absent and is not installed automatically."""


class InstallVerificationError(ProvisioningError):
    """The package manager ran, yet the tool is still not on PATH."""

    hint = "Check the package manager output and that the install location is on PATH."


class UserAbortedError(ProvisioningError):
    """The user declined a confirmation gate."""


class NoTokenDetectedError(ProvisioningError):
    """gpg cannot see a hardware token."""

    hint = "Insert your YubiKey and make sure pcscd/scdaemon can access it."


class KeyIdNotFoundError(ProvisioningError):
    """No secret key in the keyring matches the requested email."""


class ExternalToolFailure(ProvisioningError):
    """An external tool exited non-zero or could not be started."""

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] = (),
        returncode: int | None = None,
        stderr: str = "",
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr


class PromptMismatchError(ExternalToolFailure):
    """A scripted dialogue met a prompt it did not expect."""

    hint = "Nothing further was sent to the token; inspect it with `gpg --card-status`."


class StageExecutionError(ProvisioningError):
    """A stage failed with an unexpected, non-provisioning exception."""


__all__ = [
    "ProvisioningError",
    "UnsupportedPlatformError",
    "MissingPackageManagerError",
    "MissingDependencyError",
    "InstallVerificationError",
    "UserAbortedError",
    "NoTokenDetectedError",
    "KeyIdNotFoundError",
    "ExternalToolFailure",
    "PromptMismatchError",
    "StageExecutionError",
]
