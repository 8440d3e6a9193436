"""OAuth token persistence.

The token lifecycle code only talks to a ``TokenStore``; the file-backed
store is what the CLI and MCP server use, the in-memory one is for tests
and embedding.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

import pydantic
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

_UNLOADED = object()


class TokenSet(BaseModel):
    """Persisted OAuth token bundle. Times are epoch milliseconds."""
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken", min_length=1)
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
    expires_at: int = Field(..., alias="expiresAt")
    token_type: Optional[str] = Field(default=None, alias="tokenType")
    stored_at: Optional[int] = Field(default=None, alias="storedAt")

    def to_file_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class TokenStore(Protocol):
    def load(self) -> TokenSet | None: ...

    def save(self, tokens: TokenSet) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStore:
    """Keeps the token set in memory only."""

    def __init__(self, tokens: TokenSet | None = None) -> None:
        self.tokens = tokens

    def load(self) -> TokenSet | None:
        return self.tokens

    def save(self, tokens: TokenSet) -> None:
        self.tokens = tokens

    def clear(self) -> None:
        self.tokens = None


class FileTokenStore:
    """JSON token file with 0600 permissions.

    The file is read at most once per instance. A missing, empty or
    unreadable file means "not authenticated" rather than an error.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._cached = _UNLOADED

    def load(self) -> TokenSet | None:
        if self._cached is _UNLOADED:
            self._cached = self._read()
        return self._cached

    def _read(self) -> TokenSet | None:
        if not self.path.exists():
            return None
        try:
            content = self.path.read_text(encoding="utf-8")
            if not content.strip():
                return None
            return TokenSet.model_validate(json.loads(content))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, pydantic.ValidationError):
            logger.warning("Ignoring unreadable token file %s", self.path)
            return None

    def save(self, tokens: TokenSet) -> None:
        self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        payload = json.dumps(tokens.to_file_dict(), indent=2)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".tokens-")
        try:
            os.fchmod(fd, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        self._cached = tokens

    def clear(self) -> None:
        if self.path.exists():
            self.path.write_text("", encoding="utf-8")
            os.chmod(self.path, 0o600)
        self._cached = None
