"""
Address whitelisting gateway backed by Discord guild roles.

NGINX issues a sub-request (via the ``ngx_http_auth_request_module``) to
this service for every request to a protected site, forwarding the client
address in ``X-Forwarded-For``. The service answers 200 (OK) if that
address has been whitelisted and 403 (Forbidden) otherwise.

Addresses get whitelisted through a one-time Discord OAuth2 login: the user
must be a member of the configured guild and hold one of the allowed roles.
On success the address is written to the whitelist database for good.
There is no revocation or expiry, and no session or cookie is involved.
"""
