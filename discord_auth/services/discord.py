"""
Client for the parts of the Discord API needed to vet a member.

Each method makes exactly one HTTP request. Failures are not retried here;
they surface as :class:`InvalidToken` (code exchange) or
:class:`ProviderError` (everything else).
"""

import logging
from typing import Any, Iterable, Optional, Set
from urllib.parse import quote, urlencode

import requests

from ..domain import Profile

logger = logging.getLogger(__name__)

DISCORD_API_URL = 'https://discord.com/api/v10'
DISCORD_AUTHORIZE_URL = 'https://discord.com/api/oauth2/authorize'
DEFAULT_SCOPES = ('identify', 'guilds', 'guilds.members.read')


class InvalidToken(RuntimeError):
    """An authorization code could not be exchanged for an access token."""


class ProviderError(RuntimeError):
    """A Discord API call failed or returned something unusable."""


class DiscordClient:
    """
    Stateless facade over the Discord OAuth2 and user endpoints.

    Parameters
    ----------
    client_id : str
    client_secret : str
    redirect_uri : str
        Must match the redirect registered with the Discord application and
        the one used to obtain the authorization code.
    api_url : str
        Base URL of the versioned REST API.
    timeout : float
        Seconds to wait for each request before giving up.
    session : :class:`requests.Session` or None
        Connection pool to use; a new one is made if not given.

    """

    def __init__(self, client_id: str, client_secret: str,
                 redirect_uri: str, api_url: str = DISCORD_API_URL,
                 timeout: float = 5.0,
                 session: Optional[requests.Session] = None) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def authorize_url(self, scopes: Iterable[str] = DEFAULT_SCOPES) -> str:
        """URL of the consent page that sends the user back with a code."""
        query = urlencode({
            'client_id': self.client_id,
            'redirect_uri': self.redirect_uri,
            'response_type': 'code',
            'scope': ' '.join(scopes),
        }, quote_via=quote)
        return f'{DISCORD_AUTHORIZE_URL}?{query}'

    def exchange_code(self, code: str) -> str:
        """Redeem a one-time authorization code for a bearer token."""
        data = {
            'client_id': self.client_id,
            'client_secret': self.client_secret,
            'grant_type': 'authorization_code',
            'code': code,
            'redirect_uri': self.redirect_uri,
        }
        try:
            resp = self.session.post(
                f'{self.api_url}/oauth2/token', data=data,
                headers={'Content-Type': 'application/x-www-form-urlencoded'},
                timeout=self.timeout
            )
            resp.raise_for_status()
            token = resp.json()['access_token']
        except (requests.RequestException, ValueError, KeyError,
                TypeError) as e:
            logger.info('Code exchange failed: %s', type(e).__name__)
            raise InvalidToken('Could not exchange authorization code') from e
        if not isinstance(token, str) or not token:
            raise InvalidToken('Token endpoint returned no access token')
        return token

    def list_communities(self, token: str) -> Set[str]:
        """IDs of the guilds the token's owner belongs to."""
        guilds = self._get('/users/@me/guilds', token)
        try:
            return {str(guild['id']) for guild in guilds}
        except (KeyError, TypeError) as e:
            raise ProviderError('Malformed guild list') from e

    def list_member_roles(self, token: str, community_id: str) -> Set[str]:
        """Role IDs the token's owner holds in one guild."""
        member = self._get(f'/users/@me/guilds/{community_id}/member', token)
        try:
            return {str(role) for role in member['roles']}
        except (KeyError, TypeError) as e:
            raise ProviderError('Malformed guild member') from e

    def fetch_profile(self, token: str) -> Profile:
        user = self._get('/users/@me', token)
        try:
            return Profile(identity_name=str(user['username']))
        except (KeyError, TypeError) as e:
            raise ProviderError('Malformed user') from e

    def _get(self, path: str, token: str) -> Any:
        try:
            resp = self.session.get(
                f'{self.api_url}{path}',
                headers={'Authorization': f'Bearer {token}'},
                timeout=self.timeout
            )
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning('Discord request to %s failed: %s', path, e)
            raise ProviderError(f'Discord request to {path} failed') from e
