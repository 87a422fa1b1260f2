"""yubiforge: hardware-backed SSH keys and GPG commit signing on a YubiKey.

Two linear workflows, five stages each:
  - Platform detection (macOS, Debian/Ubuntu, Fedora)
  - Dependency resolution through brew / apt-get / dnf, re-verified after install
  - Interactive precondition gates before anything destructive
  - Credential provisioning via ssh-keygen (resident ed25519-sk) or gpg (keytocard)
  - Idempotent SSH config / git config integration and public key display
"""

__version__ = "0.1.0"
__description__ = "Set up a YubiKey for SSH authentication and GPG commit signing"

from yubiforge.core.orchestrator import Orchestrator
from yubiforge.cli.app import app as cli

__all__ = ["Orchestrator", "cli", "__version__"]
