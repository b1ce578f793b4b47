"""Credential resolution and private test corpus retrieval."""

import base64
import binascii
import os
import shlex
import struct
from contextlib import contextmanager
from typing import Callable, Iterator, List, MutableMapping, Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from cijob.constants import (
    CREDENTIAL_ID,
    CREDENTIAL_IV_TEMPLATE,
    CREDENTIAL_KEY_TEMPLATE,
    EXPORTED_IV_VAR,
    EXPORTED_KEY_VAR,
    IDENTITY_FILE_MODE,
    PRIVATE_CORPUS_HOST,
    PRIVATE_CORPUS_REPO,
    PRIVATE_IDENTITY_NAME,
    PRIVATE_KEY_BLOB_URL,
    SSH_DIR_MODE,
)
from cijob.errors import ConfigurationError, OperationFailure
from cijob.errors_catalog import actionable_error
from cijob.models import CredentialMaterial, JobContext


def _length_prefixed_fields(data: bytes) -> Optional[List[bytes]]:
    fields = []
    offset = 0
    while offset < len(data):
        if offset + 4 > len(data):
            return None
        (length,) = struct.unpack(">I", data[offset : offset + 4])
        offset += 4
        if offset + length > len(data):
            return None
        fields.append(data[offset : offset + length])
        offset += length
    return fields


def check_known_hosts_entry(entry: str, host: str = PRIVATE_CORPUS_HOST) -> str:
    """Returns ``entry`` if it is a complete ``hosts keytype base64-key`` line.

    The key blob is a sequence of length-prefixed fields whose first field
    repeats the key type; a truncated blob is rejected.
    """
    if not entry or not entry.strip():
        raise ConfigurationError(actionable_error("missing_known_host", host=host))

    fields = entry.split()
    if len(fields) < 3:
        raise ConfigurationError(
            actionable_error("invalid_known_host", reason="expected hosts, key type and key", host=host)
        )
    key_type, blob = fields[1], fields[2]

    try:
        data = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError):
        raise ConfigurationError(
            actionable_error("invalid_known_host", reason="key is not base64", host=host)
        ) from None

    parts = _length_prefixed_fields(data)
    if not parts:
        raise ConfigurationError(
            actionable_error("invalid_known_host", reason="key blob is truncated", host=host)
        )
    if parts[0] != key_type.encode("ascii", "replace"):
        raise ConfigurationError(
            actionable_error("invalid_known_host", reason=f"key blob is not a {key_type} key", host=host)
        )
    return entry.strip()


class CredentialProvisioner:
    """Resolves decryption material and fetches the private test corpus.

    ``environ`` is the environment handed to child processes; resolved
    material is exported into it so nested executions see the same values.
    """

    def __init__(
        self,
        logger,
        console,
        job_context: JobContext,
        environ: MutableMapping[str, str],
        download_service,
        filesystem_service,
        ssh_dir: str,
        known_hosts_entry: str,
    ):
        self.logger = logger
        self.console = console
        self.job_context = job_context
        self.environ = environ
        self.download_service = download_service
        self.filesystem_service = filesystem_service
        self.ssh_dir = ssh_dir
        self.known_hosts_entry = known_hosts_entry
        self._material: Optional[CredentialMaterial] = None

    @property
    def key_var(self) -> str:
        return CREDENTIAL_KEY_TEMPLATE.format(CREDENTIAL_ID)

    @property
    def iv_var(self) -> str:
        return CREDENTIAL_IV_TEMPLATE.format(CREDENTIAL_ID)

    @property
    def identity_path(self) -> str:
        return os.path.join(self.ssh_dir, PRIVATE_IDENTITY_NAME)

    def resolve(self) -> CredentialMaterial:
        if self._material is not None:
            return self._material

        key = self.environ.get(EXPORTED_KEY_VAR, "")
        iv = self.environ.get(EXPORTED_IV_VAR, "")
        if not key:
            key = self.environ.get(self.key_var, "")
            iv = self.environ.get(self.iv_var, "")
            if key and iv:
                self.environ[EXPORTED_KEY_VAR] = key
                self.environ[EXPORTED_IV_VAR] = iv

        self._material = CredentialMaterial(key=key, iv=iv)
        return self._material

    def fetch_private_corpus(self, dest: str, run_cmd: Callable) -> bool:
        """Clones the private corpus into ``dest``. Returns False when skipped."""
        if not self.job_context.is_ci:
            self.console.print(
                "[yellow]Note: skipping private tests (to run them, do a CI build "
                "with the encrypted key/iv variables).[/yellow]"
            )
            return False

        material = self.resolve()
        if material.is_complete():
            known_host = check_known_hosts_entry(self.known_hosts_entry)
            with self.installed_identity(material) as identity_path:
                self.filesystem_service.append_line(
                    os.path.join(self.ssh_dir, "known_hosts"), known_host
                )
                env = dict(self.environ)
                env["GIT_SSH_COMMAND"] = " ".join(
                    [
                        "ssh",
                        "-i",
                        shlex.quote(identity_path),
                        "-o",
                        "IdentitiesOnly=yes",
                        "-o",
                        "UserKnownHostsFile=" + shlex.quote(os.path.join(self.ssh_dir, "known_hosts")),
                    ]
                )
                self.console.print("[blue]Cloning private test corpus...[/blue]")
                run_cmd(["git", "clone", PRIVATE_CORPUS_REPO, dest], env=env)
            return True

        if self.job_context.is_pull_request:
            self.console.print(
                "[yellow]Note: skipping private tests because encrypted variables are "
                "not available in pull request builds.[/yellow]"
            )
            return False

        raise ConfigurationError(
            actionable_error("missing_credentials", key_var=self.key_var, iv_var=self.iv_var)
        )

    @contextmanager
    def installed_identity(self, material: CredentialMaterial) -> Iterator[str]:
        """Installs the decrypted SSH identity; it is always deleted on exit."""
        os.makedirs(self.ssh_dir, mode=SSH_DIR_MODE, exist_ok=True)
        blob_path = self.identity_path + ".enc"
        try:
            self.download_service.download_file(
                PRIVATE_KEY_BLOB_URL, blob_path, "Downloading private test key..."
            )
            self.decrypt_file(blob_path, self.identity_path, material)
            self.filesystem_service.set_permissions(self.identity_path, IDENTITY_FILE_MODE)
            yield self.identity_path
        finally:
            self.filesystem_service.remove_file(blob_path)
            if not self.filesystem_service.remove_file(self.identity_path):
                self.logger.error("Private identity file was left at %s", self.identity_path)

    def decrypt_file(self, src_path: str, dest_path: str, material: CredentialMaterial):
        """AES-256-CBC decryption with PKCS#7 padding (hex key and IV)."""
        try:
            key = bytes.fromhex(material.key)
            iv = bytes.fromhex(material.iv)
        except ValueError as exc:
            raise ConfigurationError(
                f"{self.key_var}/{self.iv_var} must be hexadecimal strings."
            ) from exc

        try:
            with open(src_path, "rb") as file_obj:
                ciphertext = file_obj.read()
            decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
        except (OSError, ValueError) as exc:
            raise OperationFailure(f"Could not decrypt {src_path}: {exc}") from exc

        fd = os.open(dest_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, IDENTITY_FILE_MODE)
        with os.fdopen(fd, "wb") as file_obj:
            file_obj.write(plaintext)
