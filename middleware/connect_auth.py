"""
Atlassian Connect request authentication for the Jira app.

Two variants guard the routes:

- strict: verifies the token signature and expiry with the tenant's shared
  secret AND recomputes the query string hash (qsh) of the incoming request.
- skip-QSH: verifies signature and expiry only.

Skip-QSH exists for AJAX calls authenticated with AP.context.getToken(), and
for deployments behind reverse proxies that rewrite or normalize the query
string so the hash can no longer be reproduced. It weakens replay and
tampering protection on query parameters, so it must only guard endpoints
that carry no sensitive data in the query string.

Failures raise ConnectAuthError, rendered as 401 {success: false, error}.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlsplit
import hmac
import logging

from fastapi import Request

from services.connect_jwt import (
    ConnectJwtError,
    compute_qsh,
    read_issuer,
    verify_token,
)
from services.credential_store import CredentialStore, TenantCredentials

logger = logging.getLogger(__name__)


class ConnectAuthError(Exception):
    """Raised when a request cannot be authenticated as coming from an installed tenant."""
    pass


@dataclass(frozen=True)
class ConnectContext:
    """Verified caller of one request."""

    client_key: str
    tenant: TenantCredentials
    claims: Dict[str, Any]

    @property
    def account_id(self) -> Optional[str]:
        return self.claims.get("sub")


def extract_token(request: Request) -> Optional[str]:
    """
    Read the Connect token from the jwt query parameter or the
    "Authorization: JWT <token>" header, in that order.
    """
    token = request.query_params.get("jwt")
    if token:
        return token.strip()

    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("JWT "):
        token = auth_header[len("JWT "):].strip()
        return token or None
    return None


class ConnectAuthenticator:
    """Verifies Connect tokens against the tenants in a credential store."""

    def __init__(self, credential_store: CredentialStore, base_url: str = ""):
        """
        Initialize authenticator.

        Args:
            credential_store: Installed tenants, looked up by the token's iss
            base_url: Public base URL of the app; its path prefix is stripped
                      before the qsh is computed
        """
        self.credential_store = credential_store
        self.base_path = urlsplit(base_url).path.rstrip("/") if base_url else ""

    def verify(self, token: Optional[str], method: str, path: str, query_params, skip_qsh: bool = False) -> ConnectContext:
        """
        Verify one token for one request.

        Args:
            token: Raw JWT, or None if the request carried none
            method: HTTP method of the request
            path: Request path
            query_params: Iterable of (key, value) query pairs
            skip_qsh: Skip the query string hash comparison

        Returns:
            ConnectContext for the verified tenant

        Raises:
            ConnectAuthError: If any check fails
        """
        if not token:
            raise ConnectAuthError("Could not find authentication data on request")

        try:
            client_key = read_issuer(token)
        except ConnectJwtError as e:
            raise ConnectAuthError(str(e))

        tenant = self.credential_store.get(client_key)
        if tenant is None:
            raise ConnectAuthError("Could not find stored client data for the token issuer")

        try:
            claims = verify_token(token, tenant.shared_secret)
        except ConnectJwtError as e:
            raise ConnectAuthError(str(e))

        if not skip_qsh:
            token_qsh = claims.get("qsh")
            if not token_qsh:
                raise ConnectAuthError("JWT missing qsh claim")
            expected_qsh = compute_qsh(method, path, query_params, self.base_path)
            if not hmac.compare_digest(str(token_qsh), expected_qsh):
                raise ConnectAuthError("Auth failure: Query hash mismatch")

        return ConnectContext(client_key=client_key, tenant=tenant, claims=claims)

    def authenticate(self, request: Request, skip_qsh: bool = False) -> ConnectContext:
        """Verify the token on a FastAPI request."""
        return self.verify(
            extract_token(request),
            request.method,
            request.url.path,
            request.query_params.multi_items(),
            skip_qsh=skip_qsh,
        )


def _authenticate(request: Request, skip_qsh: bool) -> ConnectContext:
    authenticator: ConnectAuthenticator = request.app.state.authenticator
    try:
        context = authenticator.authenticate(request, skip_qsh=skip_qsh)
    except ConnectAuthError as e:
        request_id = getattr(request.state, "request_id", None)
        logger.warning(f"Auth Error (request_id={request_id}, path={request.url.path}): {str(e)}")
        raise
    request.state.connect = context
    logger.info(f"Connect token validated (tenant={context.client_key}, user={context.account_id})")
    return context


async def require_connect_jwt(request: Request) -> ConnectContext:
    """Dependency: strict verification, qsh included."""
    return _authenticate(request, skip_qsh=False)


async def require_connect_jwt_skip_qsh(request: Request) -> ConnectContext:
    """Dependency: signature and expiry only."""
    return _authenticate(request, skip_qsh=True)


async def require_connect_jwt_ajax(request: Request) -> ConnectContext:
    """Dependency for AJAX routes: skip-QSH unless CONNECT_SKIP_QSH_FOR_AJAX is off."""
    return _authenticate(request, skip_qsh=request.app.state.config.CONNECT_SKIP_QSH_FOR_AJAX)
