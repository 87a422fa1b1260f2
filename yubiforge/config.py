"""Runtime configuration — env-driven.

Centralized config using pydantic-settings. Reads from a .env file and
YUBIFORGE_* environment variables. The CLI itself takes no options: paths,
host names and key parameters are only adjustable here.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def default_gnupg_home() -> Path:
    """``$GNUPGHOME`` when set, otherwise ``~/.gnupg``."""
    gnupghome = os.environ.get("GNUPGHOME")
    if gnupghome:
        return Path(gnupghome).expanduser()
    return Path.home() / ".gnupg"


class YubiforgeConfig(BaseSettings):
    """Provisioning configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export YUBIFORGE_LOG_LEVEL=DEBUG
        export YUBIFORGE_REMOTE_HOST=gitlab.com
        export YUBIFORGE_SSH_APPLICATION=ssh:gitlab

    Or via .env file::

        YUBIFORGE_SIGNATURE_TOUCH_POLICY=cached
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="YUBIFORGE_",
        env_file_encoding="utf-8",
    )

    log_level: str = "INFO"

    # SSH workflow
    ssh_dir: Path = Path.home() / ".ssh"
    ssh_key_name: str = "id_ed25519_sk_github"
    ssh_application: str = "ssh:github"
    remote_host: str = "github.com"
    remote_user: str = "git"
    ssh_keys_url: str = "https://github.com/settings/ssh/new"

    # GPG workflow
    # Same keyring gpg itself (and so git) uses
    gnupg_home: Path = Field(default_factory=default_gnupg_home)
    gpg_key_algo: str = "ed25519"
    gpg_encryption_algo: str = "cv25519"
    gpg_expiry: str = "2y"
    gpg_passphrase: SecretStr = SecretStr("")
    signature_touch_policy: str = "on"  # ykman: on, off, fixed, cached, cached-fixed
    gpg_keys_url: str = "https://github.com/settings/gpg/new"

    # Where distribution marker files (debian_version, fedora-release) live
    release_marker_dir: Path = Path("/etc")

    @property
    def ssh_key_path(self) -> Path:
        """Fixed location of the hardware-backed SSH key."""
        return self.ssh_dir / self.ssh_key_name

    @property
    def ssh_config_path(self) -> Path:
        return self.ssh_dir / "config"

    @property
    def gpg_agent_conf_path(self) -> Path:
        return self.gnupg_home / "gpg-agent.conf"


# Module-level singleton — import as `from yubiforge.config import config`
config = YubiforgeConfig()
