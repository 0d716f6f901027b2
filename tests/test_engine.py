"""Tests for :class:`discord_auth.engine.AuthorizationEngine`."""

from unittest import mock

import pytest

from discord_auth import domain
from discord_auth.domain import AuthorizationAttempt
from discord_auth.engine import AuthorizationEngine
from discord_auth.services import discord, whitelist


def test_new_address_is_authorized(engine, store, discord_client):
    """Good code, right guild and role, unseen address."""
    assert not engine.check('9.9.9.9')

    outcome = engine.authorize(AuthorizationAttempt('abc', '9.9.9.9'))

    assert outcome == domain.Authorized(identity_name='bob')
    assert engine.check('9.9.9.9')
    assert not engine.check('9.9.9.8')
    discord_client.exchange_code.assert_called_once_with('abc')
    discord_client.list_communities.assert_called_once_with('access-token')
    discord_client.list_member_roles.assert_called_once_with('access-token',
                                                             'guild-1')
    discord_client.fetch_profile.assert_called_once_with('access-token')


def test_second_attempt_is_already_authorized(engine, store, discord_client):
    first = engine.authorize(AuthorizationAttempt('abc', '9.9.9.9'))
    second = engine.authorize(AuthorizationAttempt('def', '9.9.9.9'))

    assert first == domain.Authorized(identity_name='bob')
    assert second == domain.AlreadyAuthorized()
    assert store.count('9.9.9.9') == 1
    # The repeat visit is answered before the profile is fetched.
    assert discord_client.fetch_profile.call_count == 1


def test_known_address(engine, store, discord_client):
    store.insert('carol', '9.9.9.9')

    outcome = engine.authorize(AuthorizationAttempt('abc', '9.9.9.9'))

    assert outcome == domain.AlreadyAuthorized()
    assert store.count('9.9.9.9') == 1
    discord_client.fetch_profile.assert_not_called()


def test_bad_code(engine, store, discord_client):
    discord_client.exchange_code.side_effect = discord.InvalidToken('nope')

    outcome = engine.authorize(AuthorizationAttempt('xyz', '9.9.9.9'))

    assert outcome == domain.InvalidToken()
    discord_client.list_communities.assert_not_called()
    discord_client.list_member_roles.assert_not_called()
    discord_client.fetch_profile.assert_not_called()
    assert store.count('9.9.9.9') == 0


def test_not_in_guild(engine, store, discord_client):
    discord_client.list_communities.return_value = {'some-other-guild'}

    outcome = engine.authorize(AuthorizationAttempt('abc', '9.9.9.9'))

    assert outcome == domain.NotInCommunity()
    discord_client.list_member_roles.assert_not_called()
    discord_client.fetch_profile.assert_not_called()
    assert not store.contains('9.9.9.9')


def test_no_guilds_at_all(engine, discord_client):
    discord_client.list_communities.return_value = set()
    outcome = engine.authorize(AuthorizationAttempt('abc', '9.9.9.9'))
    assert outcome == domain.NotInCommunity()


def test_missing_role(engine, store, discord_client):
    discord_client.list_member_roles.return_value = {'role-z', 'role-y'}

    outcome = engine.authorize(AuthorizationAttempt('abc', '9.9.9.9'))

    assert outcome == domain.MissingRole()
    discord_client.fetch_profile.assert_not_called()
    assert store.count('9.9.9.9') == 0


def test_any_allowed_role_is_enough(engine, discord_client):
    discord_client.list_member_roles.return_value = {'role-b'}
    outcome = engine.authorize(AuthorizationAttempt('abc', '9.9.9.9'))
    assert outcome == domain.Authorized(identity_name='bob')


def test_no_allowed_roles_configured(discord_client, store):
    engine = AuthorizationEngine(discord_client, store, 'guild-1', [])
    outcome = engine.authorize(AuthorizationAttempt('abc', '9.9.9.9'))
    assert outcome == domain.MissingRole()


def test_numeric_ids_are_compared_as_strings(discord_client, store):
    discord_client.list_communities.return_value = {'1234'}
    discord_client.list_member_roles.return_value = {'5678'}
    engine = AuthorizationEngine(discord_client, store, 1234, [5678])
    outcome = engine.authorize(AuthorizationAttempt('abc', '9.9.9.9'))
    assert outcome == domain.Authorized(identity_name='bob')


@pytest.mark.parametrize('method', ['list_communities', 'list_member_roles',
                                    'fetch_profile'])
def test_provider_failure_is_internal_error(engine, store, discord_client,
                                            method):
    getattr(discord_client, method).side_effect = \
        discord.ProviderError('boom')

    outcome = engine.authorize(AuthorizationAttempt('abc', '9.9.9.9'))

    assert outcome == domain.InternalError()
    assert store.count('9.9.9.9') == 0


def test_lookup_failure_is_internal_error(engine, store, discord_client):
    with mock.patch.object(store, 'contains',
                           side_effect=whitelist.StoreUnavailable('down')):
        outcome = engine.authorize(AuthorizationAttempt('abc', '9.9.9.9'))

    assert outcome == domain.InternalError()
    discord_client.fetch_profile.assert_not_called()


def test_write_failure_is_internal_error(engine, store):
    with mock.patch.object(store, 'insert',
                           side_effect=whitelist.StoreUnavailable('down')):
        outcome = engine.authorize(AuthorizationAttempt('abc', '9.9.9.9'))
    assert outcome == domain.InternalError()


def test_lost_race_is_already_authorized(engine, store):
    """Another attempt wrote the grant between our lookup and our insert."""
    store.insert('carol', '9.9.9.9')
    with mock.patch.object(store, 'contains', return_value=False):
        outcome = engine.authorize(AuthorizationAttempt('abc', '9.9.9.9'))

    assert outcome == domain.AlreadyAuthorized()
    assert store.count('9.9.9.9') == 1


def test_unexpected_error_does_not_escape(engine, discord_client):
    discord_client.exchange_code.side_effect = KeyError('surprise')
    outcome = engine.authorize(AuthorizationAttempt('abc', '9.9.9.9'))
    assert outcome == domain.InternalError()


def test_check_propagates_store_failure(engine, store):
    with mock.patch.object(store, 'contains',
                           side_effect=whitelist.StoreUnavailable('down')):
        with pytest.raises(whitelist.StoreUnavailable):
            engine.check('9.9.9.9')
