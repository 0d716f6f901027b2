"""Fixtures shared by the whitelist gateway tests.

The whitelist store runs against a throwaway SQLite file per test. Discord
is replaced by an autospecced :class:`DiscordClient` whose default answers
describe a member in good standing: user ``bob`` in guild ``guild-1`` with
role ``role-a``.
"""
from unittest import mock

import pytest
from fastapi.testclient import TestClient

from discord_auth.config import Settings
from discord_auth.domain import Profile
from discord_auth.engine import AuthorizationEngine
from discord_auth.factory import create_app
from discord_auth.services.discord import DiscordClient
from discord_auth.services.whitelist import WhitelistStore, create_db_engine

GUILD = 'guild-1'
ALLOWED_ROLES = ['role-a', 'role-b']
AUTHORIZE_URL = 'https://discord.com/api/oauth2/authorize?client_id=cid'


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'whitelist.db'}"


@pytest.fixture
def store(db_url):
    _store = WhitelistStore(create_db_engine(db_url), table_prefix='test_')
    _store.initialize()
    yield _store
    _store.engine.dispose()


@pytest.fixture
def discord_client():
    client = mock.create_autospec(DiscordClient, instance=True)
    client.authorize_url.return_value = AUTHORIZE_URL
    client.exchange_code.return_value = 'access-token'
    client.list_communities.return_value = {'some-other-guild', GUILD}
    client.list_member_roles.return_value = {'role-z', 'role-a'}
    client.fetch_profile.return_value = Profile(identity_name='bob')
    return client


@pytest.fixture
def engine(discord_client, store):
    return AuthorizationEngine(discord_client, store, GUILD, ALLOWED_ROLES)


@pytest.fixture
def settings(db_url):
    return Settings(
        database_url=db_url,
        table_prefix='test_',
        allowed_guild=GUILD,
        allowed_roles=ALLOWED_ROLES,
        discord_client_id='cid',
        discord_client_secret='csecret',
        canonical_url='https://example.com/',
        base_path='/auth',
    )


@pytest.fixture
def app_client(settings, store, discord_client):
    app = create_app(settings, store=store, client=discord_client)
    return TestClient(app)
