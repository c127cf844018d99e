"""Configuration loading and validation for activitysync.

The JSON config file uses camelCase keys::

    {
        "general": {"requestDelay": 5000, "baseDir": "{homeDir}/garmin",
                    "defaultPickPolicy": "notNull"},
        "browser": {"launchOptions": {"headless": true}},
        "credentials": {"username": "me@example.com", "password": "..."},
        "activities": {
            "search": {"parameters": {"activityType": "running"},
                       "path": "{baseDir}/activities.json",
                       "pick": ["activityId", "activityName", "distance"]},
            "fetch": [{"url": "https://.../activity/{activityId}/details",
                       "path": "{baseDir}/details/{activityId}.json"}]
        }
    }

Everything is validated before the browser is started so configuration
mistakes never cause partial work.
"""

from __future__ import annotations

import json
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from activitysync.domain.paths import compile_template, evaluate_template
from activitysync.domain.projection import (
    ACTIVITY_ID,
    PickPolicy,
    build_pick_policy,
    parse_field,
)

DEFAULT_CONFIG_PATH = "scraper.config.json"
DEFAULT_REQUEST_DELAY_MS = 5000
DEFAULT_ACTIVITIES_PATH = "activities.json"

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PickValue = Union[Literal["all", "notNull"], list[Union[str, tuple[str, str]]]]


class ConfigError(Exception):
    """Raised when configuration, credentials or stored state are invalid."""


class ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )


def _check_template(value: str | None) -> str | None:
    if value is not None:
        compile_template(value)
    return value


def _check_pick(value: PickValue | None) -> PickValue | None:
    if isinstance(value, list):
        for entry in value:
            parse_field(entry)
    return value


class GeneralConfig(ConfigModel):
    request_delay: int = Field(DEFAULT_REQUEST_DELAY_MS, ge=0)
    base_dir: str | None = None
    default_pick_policy: Literal["all", "notNull"] = "all"

    @field_validator("base_dir")
    @classmethod
    def check_base_dir(cls, value: str | None) -> str | None:
        return _check_template(value)

    @property
    def request_delay_seconds(self) -> float:
        return self.request_delay / 1000


class BrowserConfig(ConfigModel):
    launch_options: dict[str, Any] = Field(default_factory=dict)


class Credentials(ConfigModel):
    username: str
    password: str

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        if not _EMAIL_PATTERN.match(value):
            raise ValueError("username must be an email address")
        return value

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if not value:
            raise ValueError("password must not be empty")
        return value


class SearchParameters(ConfigModel):
    """Query parameters for the activity search; unknown keys pass through."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    activity_type: str | None = None
    activity_sub_type: str | None = None
    start: int = Field(0, ge=0)
    limit: int = Field(20, ge=1)

    def as_query(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SearchConfig(ConfigModel):
    parameters: SearchParameters = Field(default_factory=SearchParameters)
    finish: int | None = None
    path: str = DEFAULT_ACTIVITIES_PATH
    pick: PickValue | None = None

    @field_validator("path")
    @classmethod
    def check_path(cls, value: str) -> str:
        return _check_template(value)

    @field_validator("pick")
    @classmethod
    def check_pick(cls, value: PickValue | None) -> PickValue | None:
        return _check_pick(value)

    def pick_policy(self, default_policy: str) -> PickPolicy:
        """Policy for summary records; explicit picks always keep ``activityId``."""
        return build_pick_policy(self.pick, default_policy, required=(ACTIVITY_ID,))


class FetchConfig(ConfigModel):
    url: str
    path: str
    title: str | None = None
    pick: PickValue | None = None

    @field_validator("url", "path")
    @classmethod
    def check_templates(cls, value: str) -> str:
        return _check_template(value)

    @field_validator("pick")
    @classmethod
    def check_pick(cls, value: PickValue | None) -> PickValue | None:
        return _check_pick(value)

    @property
    def label(self) -> str:
        return self.title or self.url

    def pick_policy(self, default_policy: str) -> PickPolicy:
        return build_pick_policy(self.pick, default_policy)


class ActivitiesConfig(ConfigModel):
    search: SearchConfig = Field(default_factory=SearchConfig)
    fetch: list[FetchConfig] = Field(default_factory=list)


class AppConfig(ConfigModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    # "puppeteer" is the key used by older config files.
    browser: BrowserConfig = Field(
        default_factory=BrowserConfig,
        validation_alias=AliasChoices("browser", "puppeteer"),
    )
    credentials: Credentials | None = None
    activities: ActivitiesConfig = Field(default_factory=ActivitiesConfig)


class StoredActivity(BaseModel):
    model_config = ConfigDict(extra="allow")

    activity_id: StrictInt = Field(alias=ACTIVITY_ID)


_stored_activities = TypeAdapter(list[StoredActivity])


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load and validate the config file at ``path``.

    A missing file yields the defaults.

    Raises:
        ConfigError: If the file is not valid JSON or violates the schema.
    """
    config_path = Path(path)
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        return AppConfig()
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Could not read config {config_path}: {exc}") from exc
    try:
        return AppConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config {config_path}: {exc}") from exc


def resolve_credentials(
    config: AppConfig,
    username: str | None = None,
    password: str | None = None,
) -> Credentials:
    """Merge command-line credentials over the configured ones."""
    merged: dict[str, Any] = {}
    if config.credentials is not None:
        merged.update(config.credentials.model_dump())
    if username:
        merged["username"] = username
    if password:
        merged["password"] = password
    try:
        return Credentials.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid credentials: {exc}") from exc


def validate_activities(data: Any, source: str | Path = "activities") -> list[dict[str, Any]]:
    """Check stored summary records and return them unchanged."""
    try:
        _stored_activities.validate_python(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid stored activities in {source}: {exc}") from exc
    return data


def _posix(path: str | Path) -> str:
    return str(path).replace("\\", "/")


def create_env(
    general: GeneralConfig | None = None,
    *,
    now: datetime | None = None,
    cwd: str | Path | None = None,
    home_dir: str | Path | None = None,
) -> dict[str, str]:
    """Build the variables available to summary and detail path templates."""
    general = general or GeneralConfig()
    now = now or datetime.now(timezone.utc)
    now = now.astimezone(timezone.utc)
    working_dir = _posix(cwd if cwd is not None else os.getcwd())
    env = {
        "currentDate": now.strftime("%Y-%m-%d"),
        "currentTime": now.strftime("%H:%M:%S"),
        "cwd": working_dir,
        "homeDir": _posix(home_dir if home_dir is not None else Path.home()),
    }
    env["baseDir"] = evaluate_template(general.base_dir or working_dir, env)
    return env


__all__ = [
    "ACTIVITY_ID",
    "ActivitiesConfig",
    "AppConfig",
    "BrowserConfig",
    "ConfigError",
    "Credentials",
    "DEFAULT_CONFIG_PATH",
    "FetchConfig",
    "GeneralConfig",
    "SearchConfig",
    "SearchParameters",
    "create_env",
    "load_config",
    "resolve_credentials",
    "validate_activities",
]
