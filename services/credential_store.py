"""
Tenant credential storage for installed Jira sites.

Each Jira site that installs the app posts its clientKey, baseUrl and
sharedSecret to /installed. The Auth Gate and the Jira client only need
get(); lifecycle callbacks use save() and delete().
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional
import json
import logging
import threading

from pydantic import BaseModel, ConfigDict, Field

from utils.encryption import SecretCipher

logger = logging.getLogger(__name__)

CIPHERTEXT_FIELD = "sharedSecretCiphertext"


class TenantCredentials(BaseModel):
    """Credentials captured from a Connect install payload."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    client_key: str = Field(..., alias="clientKey", min_length=1)
    base_url: str = Field(..., alias="baseUrl", min_length=1)
    shared_secret: str = Field(..., alias="sharedSecret", min_length=1)
    product_type: Optional[str] = Field(default=None, alias="productType")
    description: Optional[str] = None


class CredentialStore(ABC):
    """Lookup of tenant credentials by clientKey."""

    @abstractmethod
    def get(self, client_key: str) -> Optional[TenantCredentials]:
        pass

    @abstractmethod
    def save(self, tenant: TenantCredentials) -> None:
        pass

    @abstractmethod
    def delete(self, client_key: str) -> bool:
        pass


class InMemoryCredentialStore(CredentialStore):
    """Process-local store; installs are lost on restart."""

    def __init__(self):
        self._tenants: Dict[str, TenantCredentials] = {}
        self._lock = threading.Lock()

    def get(self, client_key: str) -> Optional[TenantCredentials]:
        with self._lock:
            return self._tenants.get(client_key)

    def save(self, tenant: TenantCredentials) -> None:
        with self._lock:
            self._tenants[tenant.client_key] = tenant

    def delete(self, client_key: str) -> bool:
        with self._lock:
            return self._tenants.pop(client_key, None) is not None


class JsonFileCredentialStore(InMemoryCredentialStore):
    """
    Store backed by a single JSON file keyed by clientKey.

    The file is read once on construction and rewritten on every change.
    Shared secrets are written as Fernet ciphertext under
    "sharedSecretCiphertext", never as plaintext.
    """

    def __init__(self, path: str, cipher: SecretCipher):
        """
        Initialize file-backed store.

        Args:
            path: JSON file location; parent directories are created
            cipher: Encrypts shared secrets on write, decrypts them on load
        """
        super().__init__()
        self.path = Path(path)
        self.cipher = cipher
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.exists():
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            for client_key, entry in raw.items():
                self._tenants[client_key] = self._from_record(entry)
            logger.info(f"Loaded {len(self._tenants)} tenant(s) from {self.path}")

    def _to_record(self, tenant: TenantCredentials) -> Dict[str, Any]:
        record = tenant.model_dump(by_alias=True, exclude={"shared_secret"})
        record[CIPHERTEXT_FIELD] = self.cipher.encrypt_secret(tenant.shared_secret)
        return record

    def _from_record(self, entry: Dict[str, Any]) -> TenantCredentials:
        entry = dict(entry)
        ciphertext = entry.pop(CIPHERTEXT_FIELD, None)
        if ciphertext:
            entry["sharedSecret"] = self.cipher.decrypt_secret(ciphertext)
        else:
            # Plaintext entries are encrypted on the next write
            logger.warning(f"Tenant {entry.get('clientKey')} has an unencrypted shared secret in {self.path}")
        return TenantCredentials.model_validate(entry)

    def _flush(self) -> None:
        data = {key: self._to_record(tenant) for key, tenant in self._tenants.items()}
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        tmp_path.replace(self.path)

    def save(self, tenant: TenantCredentials) -> None:
        with self._lock:
            self._tenants[tenant.client_key] = tenant
            self._flush()

    def delete(self, client_key: str) -> bool:
        with self._lock:
            removed = self._tenants.pop(client_key, None) is not None
            if removed:
                self._flush()
            return removed


def create_credential_store(path: Optional[str], secret_key: Optional[str] = None) -> CredentialStore:
    """
    File-backed store when a path is configured, in-memory otherwise.

    Raises:
        RuntimeError: If a path is configured without a valid CONNECT_STORE_KEY
    """
    if path:
        return JsonFileCredentialStore(path, SecretCipher(secret_key))
    logger.warning("CONNECT_STORE_PATH not set - tenant installs are kept in memory only")
    return InMemoryCredentialStore()
