"""Client credentials and region endpoints.

Credentials come from the environment when both ``TICKTICK_CLIENT_ID`` and
``TICKTICK_CLIENT_SECRET`` are set, otherwise from a JSON file in the
per-user config directory.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import NamedTuple

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ticktick_cli.errors import InvalidConfigFile, InvalidRegion, NoConfigFound

CONFIG_DIR = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config") / "ticktick"
CONFIG_PATH = CONFIG_DIR / "config.json"
TOKEN_PATH = CONFIG_DIR / "tokens.json"

DEFAULT_REDIRECT_URI = "http://localhost:18888/callback"
DEFAULT_REGION = "global"


class RegionEndpoints(NamedTuple):
    api_base: str
    authorize_url: str
    token_url: str


REGIONS: dict[str, RegionEndpoints] = {
    "global": RegionEndpoints(
        api_base="https://api.ticktick.com/open/v1",
        authorize_url="https://ticktick.com/oauth/authorize",
        token_url="https://ticktick.com/oauth/token",
    ),
    "china": RegionEndpoints(
        api_base="https://api.dida365.com/open/v1",
        authorize_url="https://dida365.com/oauth/authorize",
        token_url="https://dida365.com/oauth/token",
    ),
}


def normalize_region(region: str | None) -> str:
    """Lower-case a region name, defaulting to global. Raises InvalidRegion."""
    value = (region or DEFAULT_REGION).lower()
    if value not in REGIONS:
        raise InvalidRegion(region or "", tuple(REGIONS))
    return value


def region_endpoints(region: str | None) -> RegionEndpoints:
    return REGIONS[normalize_region(region)]


class Credentials(BaseModel):
    """OAuth client registration for one TickTick deployment."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    client_id: str = Field(..., alias="clientId", min_length=1)
    client_secret: str = Field(..., alias="clientSecret", min_length=1)
    redirect_uri: str = Field(default=DEFAULT_REDIRECT_URI, alias="redirectUri")
    # Validated lazily by region_endpoints() so a bad value fails as InvalidRegion.
    region: str = Field(default=DEFAULT_REGION)

    @field_validator("redirect_uri", "region", mode="before")
    @classmethod
    def empty_to_default(cls, v, info):
        if v in (None, ""):
            return DEFAULT_REDIRECT_URI if info.field_name == "redirect_uri" else DEFAULT_REGION
        return v

    @property
    def endpoints(self) -> RegionEndpoints:
        return region_endpoints(self.region)

    def to_file_dict(self) -> dict:
        return self.model_dump(by_alias=True)


def credentials_from_env() -> Credentials | None:
    """Build credentials from TICKTICK_* variables, or None if incomplete."""
    client_id = os.environ.get("TICKTICK_CLIENT_ID")
    client_secret = os.environ.get("TICKTICK_CLIENT_SECRET")
    if not (client_id and client_secret):
        return None
    return Credentials(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=os.environ.get("TICKTICK_REDIRECT_URI") or DEFAULT_REDIRECT_URI,
        region=os.environ.get("TICKTICK_REGION") or DEFAULT_REGION,
    )


def has_config(path: Path = CONFIG_PATH) -> bool:
    if os.environ.get("TICKTICK_CLIENT_ID") and os.environ.get("TICKTICK_CLIENT_SECRET"):
        return True
    return Path(path).exists()


def load_config(path: Path = CONFIG_PATH) -> Credentials:
    """Load credentials from the environment, falling back to ``path``."""
    creds = credentials_from_env()
    if creds is not None:
        return creds

    path = Path(path)
    if not path.exists():
        raise NoConfigFound(f"No config found. Run 'ticktick setup' or create {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Credentials.model_validate(data)
    except (json.JSONDecodeError, pydantic.ValidationError) as e:
        raise InvalidConfigFile(
            'Invalid config file. Please run "ticktick setup" to reconfigure.'
        ) from e


def ensure_config_dir(directory: Path) -> None:
    directory.mkdir(mode=0o700, parents=True, exist_ok=True)


def save_config(credentials: Credentials, path: Path = CONFIG_PATH) -> None:
    path = Path(path)
    ensure_config_dir(path.parent)
    payload = json.dumps(credentials.to_file_dict(), indent=2)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(payload)
    os.chmod(path, 0o600)
