"""
trip_session.auth.credentials

Credential store for the current access token.

Responsibilities:
- Hold the access credential read by every outbound call.
- Persist it across restarts in client-local storage.
- Expose an epoch that advances on every change, so suspended work can tell
  whether the credential was replaced or cleared underneath it.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

from trip_session.observability.logging import get_logger

log = get_logger(__name__)


class TokenStorage(Protocol):
    def read(self) -> str | None: ...

    def write(self, token: str) -> None: ...

    def delete(self) -> None: ...


class MemoryTokenStorage:
    def __init__(self, token: str | None = None) -> None:
        self.token = token

    def read(self) -> str | None:
        return self.token

    def write(self, token: str) -> None:
        self.token = token

    def delete(self) -> None:
        self.token = None


class FileTokenStorage:
    """
    Single JSON document `{"accessToken": "..."}` on local disk.

    A missing, unreadable or malformed file reads as "no credential".
    Writes go through a temp file + `os.replace` so readers never see a
    truncated document.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read(self) -> str | None:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            log.warning("credential_file_unreadable", path=str(self.path))
            return None
        token = data.get("accessToken") if isinstance(data, dict) else None
        return token if isinstance(token, str) and token else None

    def write(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=".credential_", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"accessToken": token}, f)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def delete(self) -> None:
        self.path.unlink(missing_ok=True)


class CredentialStore:
    """
    Owner of the access credential. Only the session controller and the
    renewal coordinator write to it; the dispatcher reads it on every send.
    """

    def __init__(self, storage: TokenStorage) -> None:
        self._storage = storage
        self._access_token: str | None = None
        self._epoch = 0

    @property
    def access_token(self) -> str | None:
        return self._access_token

    @property
    def epoch(self) -> int:
        return self._epoch

    def load(self) -> str | None:
        """Adopt the persisted credential, if any (boot only)."""

        self._access_token = self._storage.read()
        return self._access_token

    def set(self, token: str) -> None:
        self._access_token = token
        self._epoch += 1
        self._storage.write(token)
        log.debug("credential_stored", epoch=self._epoch)

    def clear(self) -> None:
        self._access_token = None
        self._epoch += 1
        self._storage.delete()
        log.debug("credential_cleared", epoch=self._epoch)


# --- Module Notes -----------------------------------------------------------
# The token value itself is never logged.
