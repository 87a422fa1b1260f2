"""Required external tools and their installation.

Each workflow declares the binaries it needs. A missing installable tool
triggers the platform's package manager with the workflow's fixed package
list, after which the tool is looked up again: a package manager run that
does not produce the tool is an ``InstallVerificationError``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from yubiforge.core.runner import CommandRunner
from yubiforge.errors import (
    InstallVerificationError,
    MissingDependencyError,
    MissingPackageManagerError,
)
from yubiforge.models.artifacts import Workflow
from yubiforge.models.platform import PlatformFamily, PlatformInfo, ToolAvailability

logger = logging.getLogger(__name__)


class ToolRequirement(BaseModel):
    """One external binary a workflow depends on."""

    model_config = ConfigDict(frozen=True)

    name: str
    required: bool = True  # optional tools are probed, never installed
    installable: bool = True
    homebrew_on_macos: bool = False  # Apple's build lacks FIDO2 support


WORKFLOW_REQUIREMENTS: dict[Workflow, list[ToolRequirement]] = {
    Workflow.SSH: [
        ToolRequirement(name="ssh-keygen", homebrew_on_macos=True),
        ToolRequirement(name="ssh-add", required=False, homebrew_on_macos=True),
        ToolRequirement(name="ssh", required=False),
        ToolRequirement(name="ykman", required=False),
    ],
    Workflow.GPG: [
        ToolRequirement(name="gpg"),
        ToolRequirement(name="git", installable=False),
        ToolRequirement(name="gpg-connect-agent", required=False),
        ToolRequirement(name="ykman", required=False),
    ],
}

WORKFLOW_PACKAGES: dict[Workflow, dict[PlatformFamily, list[str]]] = {
    Workflow.SSH: {
        PlatformFamily.MACOS: ["openssh", "ykman"],
        PlatformFamily.LINUX_DEBIAN: ["openssh-client"],
        PlatformFamily.LINUX_FEDORA: ["openssh-clients"],
    },
    Workflow.GPG: {
        PlatformFamily.MACOS: ["gnupg", "pinentry-mac", "yubikey-personalization"],
        PlatformFamily.LINUX_DEBIAN: ["gnupg2", "pcscd", "scdaemon"],
        PlatformFamily.LINUX_FEDORA: ["gnupg2", "pcscd"],
    },
}


class DependencyResolver:
    """Checks for, and when needed installs, a workflow's tools.

    Parameters
    ----------
    runner:
        Command runner used for lookups and package manager calls.
    platform:
        Detected host platform.
    workflow:
        Selects the requirement and package lists.
    use_sudo:
        Prefix Linux package manager calls with ``sudo``. Defaults to
        "unless already root".
    """

    def __init__(
        self,
        runner: CommandRunner,
        platform: PlatformInfo,
        workflow: Workflow,
        *,
        use_sudo: bool | None = None,
    ) -> None:
        self._runner = runner
        self._platform = platform
        self._workflow = workflow
        if use_sudo is None:
            use_sudo = hasattr(os, "geteuid") and os.geteuid() != 0
        self._use_sudo = use_sudo
        self._brew_prefix: Path | None = None
        self.installed_packages: list[str] = []

    @property
    def requirements(self) -> list[ToolRequirement]:
        return list(WORKFLOW_REQUIREMENTS[self._workflow])

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def brew_prefix(self) -> Path:
        """Homebrew's install prefix (``brew --prefix``)."""
        if self._brew_prefix is None:
            brew = self._runner.which("brew")
            if brew is None:
                raise MissingPackageManagerError(
                    "Homebrew is not installed.",
                    hint="Install Homebrew (https://brew.sh) and re-run.",
                )
            result = self._runner.run([brew, "--prefix"])
            self._brew_prefix = Path(result.stdout.strip())
        return self._brew_prefix

    def lookup(self, requirement: ToolRequirement) -> str | None:
        """Resolved path of *requirement*, or ``None`` when absent."""
        if requirement.homebrew_on_macos and self._platform.family == PlatformFamily.MACOS:
            if self._runner.which("brew") is None:
                return None
            candidate = self.brew_prefix() / "bin" / requirement.name
            return str(candidate) if candidate.exists() else None
        return self._runner.which(requirement.name)

    def _requirement(self, tool_name: str) -> ToolRequirement:
        for req in WORKFLOW_REQUIREMENTS[self._workflow]:
            if req.name == tool_name:
                return req
        return ToolRequirement(name=tool_name)

    # ------------------------------------------------------------------
    # ensure / install
    # ------------------------------------------------------------------

    def ensure(self, tool_name: str) -> ToolAvailability:
        """Make sure *tool_name* is available, installing it if allowed."""
        req = self._requirement(tool_name)
        path = self.lookup(req)
        if path is not None:
            logger.info("found %s at %s", tool_name, path)
            return ToolAvailability(name=tool_name, found=True, resolved_path=path)

        if not req.required:
            logger.info("optional tool %s not found", tool_name)
            return ToolAvailability(name=tool_name, found=False)

        if not req.installable:
            raise MissingDependencyError(
                f"{tool_name} is not installed.",
                hint=f"Install {tool_name} and re-run.",
            )

        logger.warning("%s is missing; installing", tool_name)
        self.install(tool_name, self._platform)

        path = self.lookup(req)
        if path is None:
            raise InstallVerificationError(
                f"{tool_name} is still not available after installation."
            )
        return ToolAvailability(
            name=tool_name, found=True, resolved_path=path, installed=True
        )

    def ensure_all(self) -> dict[str, ToolAvailability]:
        """Run :meth:`ensure` for every requirement of the workflow, in order."""
        return {req.name: self.ensure(req.name) for req in self.requirements}

    def install(self, tool_name: str, platform: PlatformInfo) -> list[str]:
        """Install the workflow's package list on *platform*.

        Returns the packages handed to the package manager. Raises
        ``MissingPackageManagerError`` when the platform has no known or
        no present package manager.
        """
        packages = WORKFLOW_PACKAGES[self._workflow].get(platform.family)
        if not packages:
            raise MissingPackageManagerError(
                f"Don't know how to install {tool_name} on {platform.kernel} "
                f"({platform.family.value})."
            )

        family = platform.family
        if family == PlatformFamily.MACOS:
            brew = self._runner.which("brew")
            if brew is None:
                raise MissingPackageManagerError(
                    "Homebrew is not installed.",
                    hint="Install Homebrew (https://brew.sh) and re-run.",
                )
            self._runner.run([brew, "install", *packages], interactive=True)
        elif family == PlatformFamily.LINUX_DEBIAN:
            apt = self._require_manager("apt-get")
            self._runner.run([*self._sudo(), apt, "update"], interactive=True)
            self._runner.run(
                [*self._sudo(), apt, "install", "-y", *packages], interactive=True
            )
        else:
            dnf = self._require_manager("dnf")
            self._runner.run(
                [*self._sudo(), dnf, "install", "-y", *packages], interactive=True
            )

        logger.info("installed %s for %s", " ".join(packages), tool_name)
        self.installed_packages.extend(packages)
        return list(packages)

    def _require_manager(self, name: str) -> str:
        path = self._runner.which(name)
        if path is None:
            raise MissingPackageManagerError(f"Package manager {name} not found.")
        if self._use_sudo and self._runner.which("sudo") is None:
            raise MissingPackageManagerError(
                "sudo is required to run the package manager but is not installed."
            )
        return path

    def _sudo(self) -> list[str]:
        return ["sudo"] if self._use_sudo else []
