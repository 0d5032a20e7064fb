"""
Secure credential store. A single API key addressed by (service, account).

Every successful ``set``/``delete`` notifies registered change listeners.
"""

import json
import logging
import os
from pathlib import Path
from typing import Callable, Optional

from watchgpt.errors import CredentialStoreError

logger = logging.getLogger(__name__)

DEFAULT_SERVICE = "watchgpt"
ACCOUNT = "openai_api_key"


class CredentialStore:
    """Base store. Subclasses implement ``_read``, ``_write`` and ``_remove``."""

    def __init__(self, service: str = DEFAULT_SERVICE, account: str = ACCOUNT):
        self.service = service
        self.account = account
        self._listeners: list[Callable[[], None]] = []

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a change listener. Returns a cleanup function."""
        self._listeners.append(listener)
        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    def get(self) -> Optional[str]:
        return self._read()

    def set(self, secret: str) -> None:
        self._write(secret)
        self._notify()

    def delete(self) -> None:
        self._remove()
        self._notify()

    def exists(self) -> bool:
        return self._read() is not None

    def has_api_key(self) -> bool:
        key = self._read()
        return key is not None and bool(key.strip())

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def _read(self) -> Optional[str]:
        raise NotImplementedError

    def _write(self, secret: str) -> None:
        raise NotImplementedError

    def _remove(self) -> None:
        raise NotImplementedError


class MemoryCredentialStore(CredentialStore):
    def __init__(self, secret: Optional[str] = None, **kwargs: str):
        super().__init__(**kwargs)
        self._secret = secret

    def _read(self) -> Optional[str]:
        return self._secret

    def _write(self, secret: str) -> None:
        self._secret = secret

    def _remove(self) -> None:
        self._secret = None


class FileCredentialStore(CredentialStore):
    """JSON file of ``{service: {account: secret}}``, written with owner-only permissions.

    Writes go to a sibling temp file that replaces the original, so an
    interrupted write never truncates the stored key.
    """

    def __init__(self, path: Path, **kwargs: str):
        super().__init__(**kwargs)
        self._path = Path(path)

    def _load(self) -> dict[str, dict[str, str]]:
        try:
            data = json.loads(self._path.read_text())
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Credential file {self._path} unreadable: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _accounts(self, data: dict) -> dict[str, str]:
        accounts = data.get(self.service)
        if accounts is None:
            return {}
        if not isinstance(accounts, dict):
            logger.warning(f"Ignoring malformed {self.service!r} entry in {self._path}")
            return {}
        return accounts

    def _dump(self, data: dict[str, dict[str, str]]) -> None:
        tmp_path = self._path.with_name(f".{self._path.name}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise CredentialStoreError(f"Credential store error: {e}", code="write_failed")

    def _read(self) -> Optional[str]:
        value = self._accounts(self._load()).get(self.account)
        return value if isinstance(value, str) else None

    def _write(self, secret: str) -> None:
        data = self._load()
        accounts = self._accounts(data)
        accounts[self.account] = secret
        data[self.service] = accounts
        self._dump(data)

    def _remove(self) -> None:
        data = self._load()
        accounts = self._accounts(data)
        if self.service in data and not accounts:
            # Malformed or empty entry: drop it.
            data.pop(self.service)
            self._dump(data)
            return
        if self.account not in accounts:
            return
        del accounts[self.account]
        if not accounts:
            data.pop(self.service, None)
        self._dump(data)
