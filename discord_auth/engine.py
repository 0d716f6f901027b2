"""
Decides whether an authorization attempt earns its caller a grant.

The policy is strictly ordered and stops at the first failing step:

1. exchange the code for a token            -> :class:`.InvalidToken`
2. list the member's guilds                 -> :class:`.InternalError`
3. require the configured guild             -> :class:`.NotInCommunity`
4. list the member's roles in that guild    -> :class:`.InternalError`
5. require one of the allowed roles         -> :class:`.MissingRole`
6. look the address up in the whitelist     -> :class:`.AlreadyAuthorized`
7. fetch the member's profile               -> :class:`.InternalError`
8. write the grant                          -> :class:`.Authorized`

The whitelist lookup runs before the profile fetch so that a repeat visit
costs no extra Discord call. A grant lost to a concurrent writer (unique
index violation) is reported as :class:`.AlreadyAuthorized`.
"""

import logging
from typing import Iterable

from . import domain
from .domain import AuthorizationAttempt, Outcome
from .services import discord, whitelist

logger = logging.getLogger(__name__)


class AuthorizationEngine:
    """Evaluates :class:`.AuthorizationAttempt` objects into outcomes."""

    def __init__(self, client: discord.DiscordClient,
                 store: whitelist.WhitelistStore, required_community: str,
                 allowed_roles: Iterable[str]) -> None:
        self.client = client
        self.store = store
        self.required_community = str(required_community)
        self.allowed_roles = frozenset(str(role) for role in allowed_roles)

    def check(self, address: str) -> bool:
        """
        Whether ``address`` has been granted access.

        Raises
        ------
        :class:`.whitelist.StoreUnavailable`
            So that callers can tell an outage apart from a miss.

        """
        return self.store.contains(address)

    def authorize(self, attempt: AuthorizationAttempt) -> Outcome:
        """Run the policy for one attempt. Never raises."""
        try:
            return self._authorize(attempt)
        except Exception:
            logger.exception('Unhandled error authorizing %s',
                             attempt.caller_address)
            return domain.InternalError()

    def _authorize(self, attempt: AuthorizationAttempt) -> Outcome:
        address = attempt.caller_address
        try:
            token = self.client.exchange_code(attempt.authorization_code)
        except discord.InvalidToken:
            logger.info('Invalid authorization code from %s', address)
            return domain.InvalidToken()

        try:
            communities = self.client.list_communities(token)
        except discord.ProviderError:
            logger.error('Could not list guilds for %s', address,
                         exc_info=True)
            return domain.InternalError()
        if self.required_community not in communities:
            logger.info('%s is not in the required guild', address)
            return domain.NotInCommunity()

        try:
            roles = self.client.list_member_roles(token,
                                                  self.required_community)
        except discord.ProviderError:
            logger.error('Could not list roles for %s', address,
                         exc_info=True)
            return domain.InternalError()
        if not self.allowed_roles & roles:
            logger.info('%s lacks an allowed role', address)
            return domain.MissingRole()

        try:
            if self.store.contains(address):
                logger.info('%s is already authorized', address)
                return domain.AlreadyAuthorized()
        except whitelist.StoreUnavailable:
            logger.error('Whitelist lookup failed for %s', address,
                         exc_info=True)
            return domain.InternalError()

        try:
            profile = self.client.fetch_profile(token)
        except discord.ProviderError:
            logger.error('Could not fetch profile for %s', address,
                         exc_info=True)
            return domain.InternalError()

        try:
            self.store.insert(profile.identity_name, address)
        except whitelist.DuplicateGrant:
            logger.info('%s was authorized concurrently', address)
            return domain.AlreadyAuthorized()
        except whitelist.StoreUnavailable:
            logger.error('Could not write grant for %s', address,
                         exc_info=True)
            return domain.InternalError()

        logger.info('Authorized %s to %s', profile.identity_name, address)
        return domain.Authorized(identity_name=profile.identity_name)
