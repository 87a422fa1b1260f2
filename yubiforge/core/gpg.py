"""OpenPGP key generation and transfer onto the hardware token.

The key is generated in the local keyring in batch mode with all three
roles (sign+certify primary, encryption subkey, authentication subkey) and
then moved onto the token's three OpenPGP slots with a scripted
``gpg --edit-key`` dialogue. Only the long key ID, the fingerprint and the
armored public key are ever read back.
"""

from __future__ import annotations

import logging
import re

from yubiforge.config import YubiforgeConfig
from yubiforge.core.expect import DialogueScript, PromptStep, run_dialogue
from yubiforge.core.reporter import Reporter
from yubiforge.core.runner import CommandRunner
from yubiforge.errors import ExternalToolFailure, KeyIdNotFoundError, NoTokenDetectedError
from yubiforge.models.artifacts import Identity, KeyArtifact, Workflow
from yubiforge.models.gpg import CardStatus, SecretKeyEntry

logger = logging.getLogger(__name__)

# "sec   ed25519/0123456789ABCDEF 2026-10-18 [SC]"; "sec#"/"sec>" mark stubs.
SEC_LINE_RE = re.compile(r"^sec(?P<stub>[#>]?)\s+(?P<algo>[^/\s]+)/(?P<keyid>\S+)")
UID_LINE_RE = re.compile(r"^uid\s+(?:\[[^\]]*\]\s+)?(?P<uid>.+)$")
FINGERPRINT_RE = re.compile(r"^(?:Key fingerprint = )?(?P<fpr>[0-9A-Fa-f ]{40,})$")
KEY_CREATED_RE = re.compile(r"^\[GNUPG:\] KEY_CREATED \w (?P<fpr>[0-9A-Fa-f]{40})")

_CARD_FIELDS = {
    "reader": "reader",
    "serialnumber": "serial",
    "signaturekey": "signature_key",
    "encryptionkey": "encryption_key",
    "authenticationkey": "authentication_key",
}


def parse_secret_key_listing(text: str) -> list[SecretKeyEntry]:
    """Parse ``gpg --list-secret-keys --keyid-format LONG`` output.

    Each ``sec`` line opens a block; the long key ID is the text between
    ``/`` and the next whitespace. The indented fingerprint line and the
    ``uid`` lines that follow belong to that block.
    """
    entries: list[SecretKeyEntry] = []
    current: dict | None = None

    def _close() -> None:
        if current is not None:
            entries.append(SecretKeyEntry(**current))

    for line in text.splitlines():
        sec = SEC_LINE_RE.match(line)
        if sec:
            _close()
            current = {
                "key_id": sec.group("keyid").upper(),
                "algorithm": sec.group("algo"),
                "stub": bool(sec.group("stub")),
                "uids": [],
            }
            continue
        if current is None:
            continue
        uid = UID_LINE_RE.match(line)
        if uid:
            current["uids"].append(uid.group("uid").strip())
            continue
        if line.startswith((" ", "\t")) and current.get("fingerprint") is None:
            fpr = FINGERPRINT_RE.match(line.strip())
            if fpr:
                compact = fpr.group("fpr").replace(" ", "").upper()
                if len(compact) == 40:
                    current["fingerprint"] = compact
    _close()
    return entries


def select_key_for_email(entries: list[SecretKeyEntry], email: str) -> SecretKeyEntry:
    """The most recent (last listed) key with a user ID of exactly *email*.

    Raises ``KeyIdNotFoundError`` when no user ID matches.
    """
    matches = [e for e in entries if e.has_email(email)]
    if not matches:
        raise KeyIdNotFoundError(
            f"No secret key with user ID <{email}> found in the keyring."
        )
    if len(matches) > 1:
        logger.warning(
            "%d secret keys match <%s>; using the most recent, %s (others: %s)",
            len(matches),
            email,
            matches[-1].key_id,
            ", ".join(m.key_id for m in matches[:-1]),
        )
    return matches[-1]


def parse_card_status(text: str) -> CardStatus:
    """Parse the ``Field ....: value`` lines of ``gpg --card-status``."""
    fields: dict[str, str | None] = {}
    for line in text.splitlines():
        label, sep, value = line.partition(":")
        if not sep:
            continue
        key = re.sub(r"[^a-z]", "", label.lower())
        attr = _CARD_FIELDS.get(key)
        if attr is None or attr in fields:
            continue
        value = value.strip()
        if attr.endswith("_key"):
            fields[attr] = None if not value or value == "[none]" else value
        else:
            fields[attr] = value
    return CardStatus(**fields)


def keytocard_script() -> DialogueScript:
    """Moves primary -> signature (1), ``key 1`` -> encryption (2),
    ``key 2`` -> authentication (3), then saves.

    gpg only asks to replace a key when the slot is occupied, and the user
    already agreed to overwrite the token's keys before generation.
    """

    def _store(slot: str) -> list[PromptStep]:
        return [
            PromptStep(prompt="keyedit.prompt", response="keytocard"),
            PromptStep(prompt=r"keyedit\.keytocard\.use_primary", response="y", optional=True),
            PromptStep(prompt=r"cardedit\.genkeys\.storekeytype", response=slot),
            PromptStep(prompt=r"cardedit\.genkeys\.replace_key", response="y", optional=True),
        ]

    return DialogueScript(
        name="keytocard",
        steps=[
            *_store("1"),
            PromptStep(prompt="keyedit.prompt", response="key 1"),
            *_store("2"),
            PromptStep(prompt="keyedit.prompt", response="key 1"),
            PromptStep(prompt="keyedit.prompt", response="key 2"),
            *_store("3"),
            PromptStep(prompt="keyedit.prompt", response="save"),
        ],
    )


class GpgProvisioner:
    """Generates the OpenPGP key and installs it on the token."""

    def __init__(
        self,
        runner: CommandRunner,
        reporter: Reporter,
        config: YubiforgeConfig,
        *,
        gpg: str = "gpg",
    ) -> None:
        self._runner = runner
        self._reporter = reporter
        self._config = config
        self._gpg = gpg

    def _base(self) -> list[str]:
        return [self._gpg, "--homedir", str(self._config.gnupg_home)]

    def _passphrase_input(self) -> str:
        return self._config.gpg_passphrase.get_secret_value() + "\n"

    # ------------------------------------------------------------------
    # Token
    # ------------------------------------------------------------------

    def probe_token(self) -> CardStatus:
        """Query the token; raises ``NoTokenDetectedError`` if there is none."""
        try:
            result = self._runner.run([*self._base(), "--card-status"])
        except ExternalToolFailure as exc:
            raise NoTokenDetectedError(
                "No YubiKey detected. Please insert your YubiKey and ensure "
                "GPG can access it."
            ) from exc
        card = parse_card_status(result.stdout)
        logger.info("token detected: serial=%s has_keys=%s", card.serial, card.has_keys)
        return card

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_gpg_key(self, name: str, email: str) -> KeyArtifact:
        """Create the key in the local keyring and return its artifact.

        The passphrase is written to gpg's stdin (``--passphrase-fd 0``),
        never to the argument list.
        """
        identity = Identity(name=name, email=email)
        expiry = self._config.gpg_expiry
        batch = [
            *self._base(),
            "--batch",
            "--status-fd", "1",
            "--pinentry-mode", "loopback",
            "--passphrase-fd", "0",
        ]

        self._reporter.info(f"Generating a new GPG key for {identity.user_id}...")
        created = self._runner.run(
            [*batch, "--quick-generate-key", identity.user_id,
             self._config.gpg_key_algo, "sign,cert", expiry],
            input_text=self._passphrase_input(),
        )

        entry = self.find_secret_key(email)
        fingerprint = entry.fingerprint or _created_fingerprint(created.stdout)
        if fingerprint is None:
            raise KeyIdNotFoundError(
                f"Could not determine the fingerprint of key {entry.key_id}."
            )

        for algo, usage in (
            (self._config.gpg_encryption_algo, "encr"),
            (self._config.gpg_key_algo, "auth"),
        ):
            self._runner.run(
                [*batch, "--quick-add-key", fingerprint, algo, usage, expiry],
                input_text=self._passphrase_input(),
            )

        logger.info("generated key %s (%s)", entry.key_id, fingerprint)
        return KeyArtifact(
            workflow=Workflow.GPG,
            key_id=entry.key_id,
            fingerprint=fingerprint,
            comment=identity.user_id,
        )

    def find_secret_key(self, email: str) -> SecretKeyEntry:
        """Look up the long key ID for *email* in the secret keyring."""
        try:
            result = self._runner.run(
                [*self._base(), "--list-secret-keys", "--keyid-format", "LONG",
                 "--with-fingerprint", email]
            )
        except ExternalToolFailure as exc:
            # gpg exits 2 when nothing matches the query
            raise KeyIdNotFoundError(
                f"No secret key with user ID <{email}> found in the keyring."
            ) from exc
        return select_key_for_email(parse_secret_key_listing(result.stdout), email)

    # ------------------------------------------------------------------
    # Transfer to token
    # ------------------------------------------------------------------

    def move_to_card(self, artifact: KeyArtifact) -> None:
        """Move all three roles of *artifact* onto the token.

        gpg asks for the key passphrase and the token's admin PIN through
        pinentry while this runs.
        """
        self._reporter.info(
            "Moving the key to your YubiKey. Enter your admin PIN when prompted."
        )
        run_dialogue(
            self._runner,
            [*self._base(), "--command-fd", "0", "--status-fd", "1",
             "--edit-key", artifact.key_id],
            keytocard_script(),
        )
        self._reporter.success("GPG key moved to YubiKey.")

    def set_touch_policy(self, ykman: str, policy: str) -> None:
        """Require a touch for signatures (``ykman openpgp keys set-touch``)."""
        self._reporter.info(f"Setting the signature touch policy to {policy!r}...")
        self._runner.run(
            [ykman, "openpgp", "keys", "set-touch", "sig", policy, "--force"],
            interactive=True,
        )
        self._reporter.success("Touch policy set.")

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_public_key(self, key_id: str) -> str:
        """ASCII-armored public key block."""
        result = self._runner.run([*self._base(), "--armor", "--export", key_id])
        armored = result.stdout.strip()
        if "BEGIN PGP PUBLIC KEY BLOCK" not in armored:
            raise ExternalToolFailure(
                f"gpg exported no public key for {key_id}.",
                command=result.args,
            )
        return armored


def _created_fingerprint(status_output: str) -> str | None:
    for line in status_output.splitlines():
        m = KEY_CREATED_RE.match(line)
        if m:
            return m.group("fpr").upper()
    return None
