"""
HTTP entry points consulted by the browser and by NGINX.

``GET /`` is where users land: without a ``code`` they are sent to the
Discord consent page, and with one the attempt is evaluated and the result
shown as plain text.

``GET /authrequest`` is the target of NGINX's ``auth_request`` sub-request
and answers 200 (allow) or 403 (deny) with an empty body.

The client address is taken verbatim from the forwarded-address header set
by the reverse proxy. It is not validated; whoever can reach this service
directly can claim any address.
"""

import logging
from typing import Optional, Tuple, assert_never

from fastapi import APIRouter, Request, status
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from . import domain
from .domain import AuthorizationAttempt, Outcome
from .engine import AuthorizationEngine
from .services import discord, whitelist

logger = logging.getLogger(__name__)

router = APIRouter()


def client_address(request: Request) -> str:
    """First address in the forwarded-address header, else the peer."""
    header = request.app.extra['FORWARDED_HEADER']
    forwarded = request.headers.get(header, '').split(',')[0].strip()
    if forwarded:
        return forwarded
    if request.client is not None:
        return request.client.host
    return ''


def render_outcome(outcome: Outcome, address: str) -> Tuple[int, str]:
    """Status code and user-facing text for an outcome."""
    match outcome:
        case domain.Authorized():
            return outcome.status_code, outcome.describe(address)
        case (domain.InvalidToken() | domain.InternalError()
              | domain.NotInCommunity() | domain.MissingRole()
              | domain.AlreadyAuthorized()):
            return outcome.status_code, outcome.message
        case _:
            assert_never(outcome)


@router.get('/')
def authorize(request: Request, code: Optional[str] = None) -> Response:
    """Send the user to Discord, or evaluate the code Discord sent back."""
    if code is None:
        client: discord.DiscordClient = request.app.extra['discord']
        return RedirectResponse(client.authorize_url(),
                                status_code=status.HTTP_302_FOUND)

    address = client_address(request)
    engine: AuthorizationEngine = request.app.extra['engine']
    outcome = engine.authorize(AuthorizationAttempt(code, address))
    status_code, body = render_outcome(outcome, address)
    return PlainTextResponse(body, status_code=status_code)


@router.get('/authrequest')
def authrequest(request: Request) -> Response:
    """Allow or deny the address NGINX is asking about."""
    address = client_address(request)
    engine: AuthorizationEngine = request.app.extra['engine']
    try:
        allowed = engine.check(address)
    except whitelist.StoreUnavailable:
        logger.error('Whitelist check failed for %s', address, exc_info=True)
        return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    if allowed:
        return Response(status_code=status.HTTP_200_OK)
    return Response(status_code=status.HTTP_403_FORBIDDEN)
