"""
Configuration for the whitelist gateway.

Settings come from ``DISCORD_AUTH_*`` environment variables, optionally
overlaid by a JSON file. The JSON file may use either the field names below
or the camelCase keys of the older ``config.json`` layout (``mysqlHost``,
``allowedGuild``, ``baseurl``, ...).
"""

import json
import os
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from sqlalchemy.engine import URL

CONFIG_FILE_ENV = 'DISCORD_AUTH_CONFIG'
DEFAULT_CONFIG_FILE = 'config.json'

LEGACY_KEYS = {
    'mysqlHost': 'mysql_host',
    'mysqlUsername': 'mysql_username',
    'mysqlPass': 'mysql_password',
    'mysqlDb': 'mysql_db',
    'mysqlTablePrefix': 'table_prefix',
    'allowedGuild': 'allowed_guild',
    'allowedRoles': 'allowed_roles',
    'discordClientId': 'discord_client_id',
    'discordClientSecret': 'discord_client_secret',
    'canonicalUrl': 'canonical_url',
    'baseurl': 'base_path',
    'listenPort': 'listen_port',
}
"""Keys of the older camelCase config file, mapped to field names."""


class ConfigurationError(RuntimeError):
    """The configuration file is missing, unreadable, or invalid."""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix='DISCORD_AUTH_',
                                      extra='ignore')

    database_url: Optional[str] = None
    """Full SQLAlchemy URL; takes precedence over the ``mysql_*`` fields."""

    mysql_host: str = 'localhost'
    mysql_username: str = 'root'
    mysql_password: str = ''
    mysql_db: str = 'discord_auth'
    table_prefix: str = ''
    db_timeout: float = 5.0

    allowed_guild: str
    """The guild a member must belong to."""

    allowed_roles: Annotated[List[str], NoDecode] = []
    """
    Holding any one of these roles in :attr:`allowed_guild` is enough.

    The environment may give either a JSON list or comma-separated IDs.
    """

    discord_client_id: str
    discord_client_secret: str
    discord_api_url: str = 'https://discord.com/api/v10'
    provider_timeout: float = 5.0

    canonical_url: str
    """Public scheme and host this service is reached at."""

    base_path: str = ''
    """Path prefix the routes are mounted under, e.g. ``/auth``."""

    listen_host: str = '0.0.0.0'
    listen_port: int = 3000

    forwarded_header: str = 'X-Forwarded-For'
    """Header the reverse proxy puts the client address in."""

    log_level: str = 'INFO'
    json_logs: bool = True

    @field_validator('allowed_guild', 'discord_client_id', mode='before')
    @classmethod
    def _snowflake_to_str(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator('allowed_roles', mode='before')
    @classmethod
    def _split_roles(cls, value: Any) -> Any:
        if isinstance(value, str) and value.lstrip().startswith('['):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as e:
                raise ValueError(f'not a JSON list of roles: {e}') from e
        if isinstance(value, str):
            return [role.strip() for role in value.split(',') if role.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(role) for role in value]
        return value

    @field_validator('canonical_url')
    @classmethod
    def _strip_canonical_url(cls, value: str) -> str:
        value = value.rstrip('/')
        if not value:
            raise ValueError('canonical_url must not be empty')
        return value

    @field_validator('base_path')
    @classmethod
    def _normalize_base_path(cls, value: str) -> str:
        value = value.strip().rstrip('/')
        if value and not value.startswith('/'):
            value = '/' + value
        return value

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return URL.create(
            'mysql+mysqldb',
            username=self.mysql_username,
            password=self.mysql_password or None,
            host=self.mysql_host,
            database=self.mysql_db,
        ).render_as_string(hide_password=False)

    @property
    def redirect_uri(self) -> str:
        """Where Discord sends the user back to, with the code."""
        return f'{self.canonical_url}{self.base_path}/'


def read_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a JSON config file, translating legacy keys."""
    try:
        with open(path, encoding='utf-8') as f:
            raw = json.load(f)
    except OSError as e:
        raise ConfigurationError(f'Cannot read {path}') from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f'{path} does not contain valid JSON') from e
    if not isinstance(raw, dict):
        raise ConfigurationError(f'{path} must contain a JSON object')
    return {LEGACY_KEYS.get(key, key): value for key, value in raw.items()}


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Build :class:`Settings` from the environment and a JSON file.

    ``path`` defaults to ``$DISCORD_AUTH_CONFIG``, then to ``config.json`` in
    the working directory if that file exists. Values from the file win
    over the environment.
    """
    if path is None:
        path = os.environ.get(CONFIG_FILE_ENV)
        if path is None and Path(DEFAULT_CONFIG_FILE).exists():
            path = DEFAULT_CONFIG_FILE
    overrides = read_config_file(path) if path is not None else {}
    return Settings(**overrides)
