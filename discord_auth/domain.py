"""
Core domain classes for the whitelist gateway.

An :class:`AuthorizationAttempt` is evaluated by
:class:`discord_auth.engine.AuthorizationEngine` into exactly one
:data:`Outcome`. Successful attempts leave behind a :class:`Grant` in the
whitelist store.
"""

from dataclasses import dataclass
from typing import ClassVar, NamedTuple, Union


class Grant(NamedTuple):
    """A persisted record authorizing a network address."""

    identity_name: str
    """Discord username of the member who earned the grant."""

    address: str
    """Client address, as forwarded by the reverse proxy."""


class AuthorizationAttempt(NamedTuple):
    """One in-flight request carrying an OAuth2 authorization code."""

    authorization_code: str
    caller_address: str


class Profile(NamedTuple):
    """The minimal slice of a Discord user needed to name a grant."""

    identity_name: str


@dataclass(frozen=True)
class InvalidToken:
    """The authorization code could not be redeemed."""

    status_code: ClassVar[int] = 400
    message: ClassVar[str] = '400: Invalid Token'


@dataclass(frozen=True)
class InternalError:
    """An upstream dependency failed; safe to retry later."""

    status_code: ClassVar[int] = 500
    message: ClassVar[str] = '500: Internal Server Error.'


@dataclass(frozen=True)
class NotInCommunity:
    """The member is not in the required guild."""

    status_code: ClassVar[int] = 403
    message: ClassVar[str] = '403: You are not in the required guild'


@dataclass(frozen=True)
class MissingRole:
    """The member holds none of the allowed roles."""

    status_code: ClassVar[int] = 403
    message: ClassVar[str] = '403: You do not have the required role.'


@dataclass(frozen=True)
class AlreadyAuthorized:
    """The caller's address was already whitelisted."""

    status_code: ClassVar[int] = 200
    message: ClassVar[str] = 'This ip is already authorized.'


@dataclass(frozen=True)
class Authorized:
    """A new grant was written for the caller's address."""

    identity_name: str

    status_code: ClassVar[int] = 200

    def describe(self, address: str) -> str:
        return f'Successfully authorized {self.identity_name} at {address}'


Outcome = Union[InvalidToken, InternalError, NotInCommunity, MissingRole,
                AlreadyAuthorized, Authorized]
"""Closed set of terminal results of an :class:`AuthorizationAttempt`."""
