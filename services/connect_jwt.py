"""
Atlassian Connect JWT utilities: query string hash, signing and verification.

Connect tokens are HS256 JWTs signed with the tenant's shared secret. The qsh
claim is the SHA-256 hex digest of the canonical request:

    METHOD&canonical-path&canonical-query
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Optional, Tuple
from urllib.parse import quote, urlsplit, parse_qsl
import hashlib

import jwt

JWT_ALGORITHM = "HS256"
JWT_EXPIRES_SECONDS = 180
JWT_LEEWAY_SECONDS = 3

# Tokens from AP.context.getToken() carry this instead of a real hash
CONTEXT_QSH = "context-qsh"


class ConnectJwtError(Exception):
    """Raised when a Connect token cannot be decoded or verified."""
    pass


def _encode_component(value: str) -> str:
    # RFC 3986: unreserved characters only; space becomes %20, not +
    return quote(value, safe="")


def canonical_path(path: str, base_path: str = "") -> str:
    """
    Path relative to the app's base URL path, without a trailing slash.

    An empty result becomes "/". Ampersands are percent-encoded.
    """
    base_path = (base_path or "").rstrip("/")
    if base_path and (path == base_path or path.startswith(base_path + "/")):
        path = path[len(base_path):]
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path.replace("&", "%26")


def canonical_query(params: Iterable[Tuple[str, str]]) -> str:
    """
    Canonical query string: jwt excluded, keys sorted, repeated values sorted
    and comma-joined, keys and values percent-encoded.
    """
    grouped: Dict[str, list] = {}
    for key, value in params:
        if key == "jwt":
            continue
        grouped.setdefault(_encode_component(key), []).append(_encode_component(value))
    return "&".join(
        f"{key}={','.join(sorted(values))}" for key, values in sorted(grouped.items())
    )


def canonical_request(method: str, path: str, params: Iterable[Tuple[str, str]], base_path: str = "") -> str:
    return f"{method.upper()}&{canonical_path(path, base_path)}&{canonical_query(params)}"


def compute_qsh(method: str, path: str, params: Iterable[Tuple[str, str]], base_path: str = "") -> str:
    """SHA-256 hex digest of the canonical request."""
    return hashlib.sha256(canonical_request(method, path, params, base_path).encode("utf-8")).hexdigest()


def compute_qsh_for_url(method: str, url: str, base_url: str = "") -> str:
    """QSH for an absolute or relative URL, relative to base_url's path."""
    parts = urlsplit(url)
    params = parse_qsl(parts.query, keep_blank_values=True)
    return compute_qsh(method, parts.path or "/", params, urlsplit(base_url).path if base_url else "")


def read_issuer(token: str) -> str:
    """
    Read the iss claim without verifying the signature.

    Used only to pick the shared secret the token must then be verified with.

    Raises:
        ConnectJwtError: If the token is malformed or has no iss
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        raise ConnectJwtError(f"Invalid JWT: {str(e)}")
    issuer = claims.get("iss")
    if not issuer:
        raise ConnectJwtError("JWT missing iss claim")
    return str(issuer)


def verify_token(token: str, shared_secret: str) -> Dict[str, Any]:
    """
    Verify signature and expiry of a Connect token.

    Returns:
        The verified claims

    Raises:
        ConnectJwtError: If the token is expired or its signature is invalid
    """
    try:
        return jwt.decode(
            token,
            shared_secret,
            algorithms=[JWT_ALGORITHM],
            leeway=JWT_LEEWAY_SECONDS,
            options={"verify_exp": True, "verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        raise ConnectJwtError("JWT expired")
    except jwt.InvalidTokenError as e:
        raise ConnectJwtError(f"Invalid JWT: {str(e)}")


def create_token(
    issuer: str,
    shared_secret: str,
    method: str,
    url: str,
    base_url: str = "",
    subject: Optional[str] = None,
    expires_seconds: int = JWT_EXPIRES_SECONDS,
) -> str:
    """
    Sign a Connect token for one outgoing request.

    Args:
        issuer: App key
        shared_secret: Tenant shared secret
        method: HTTP method of the request
        url: Request URL (the qsh covers its path and query)
        base_url: Product base URL; its path is stripped from the qsh path
        subject: Optional accountId to act as
        expires_seconds: Token lifetime
    """
    now = datetime.now(timezone.utc)
    payload = {
        "iss": issuer,
        "iat": now,
        "exp": now + timedelta(seconds=expires_seconds),
        "qsh": compute_qsh_for_url(method, url, base_url),
    }
    if subject:
        payload["sub"] = subject
    return jwt.encode(payload, shared_secret, algorithm=JWT_ALGORITHM)
