"""
Token Manager - resolves the bearer token used for every IndxCloudApi request.

A configured BEARER_TOKEN is used as-is. Otherwise the token is fetched once
via POST api/login with the configured email and password.
"""

import logging
from typing import Optional

import requests

from src.indx_loader.schemas.indx_schemas import LoginRequest

logger = logging.getLogger(__name__)

LOGIN_ENDPOINT = "api/login"


class AuthenticationError(RuntimeError):
    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


def _mask(t: str) -> str:
    return (t[:4] + "…" + t[-4:]) if t and len(t) > 8 else "***"


def login(base_url: str, email: str, password: str, verify_ssl: bool = True, timeout: float = 30) -> str:
    """Exchange email + password for a JWT. Raises AuthenticationError on any failure."""
    login_url = f"{base_url.rstrip('/')}/{LOGIN_ENDPOINT}"
    payload = LoginRequest(user_email=email, user_password=password).to_wire()

    try:
        response = requests.post(
            login_url,
            json=payload,
            headers={"Accept": "application/json"},
            verify=verify_ssl,
            timeout=timeout,
        )
    except requests.RequestException as e:
        logger.error(f"❌ Login request to {login_url} failed: {e}")
        raise AuthenticationError(f"Login failed: {e}") from e

    if not response.ok:
        logger.error(f"❌ Login rejected: HTTP {response.status_code}")
        logger.error(f"   Response: {response.text[:300]}")
        raise AuthenticationError(
            f"Login failed: HTTP {response.status_code}", status=response.status_code, body=response.text
        )

    try:
        data = response.json()
    except ValueError as e:
        raise AuthenticationError("Login failed: response is not JSON", response.status_code, response.text) from e

    token = data.get("token") if isinstance(data, dict) else None
    if not token:
        raise AuthenticationError(
            f"No token in login response: {list(data.keys()) if isinstance(data, dict) else type(data).__name__}",
            status=response.status_code,
        )

    logger.info(f"✅ Login token: {_mask(token)}")
    return token


def resolve_bearer_token(config: dict) -> str:
    """
    Bearer token from config takes precedence; otherwise log in with email/password.
    Raises AuthenticationError when neither is usable.
    """
    auth = config['auth']
    if auth.get('bearer_token'):
        logger.debug(f"🔑 Using configured bearer token {_mask(auth['bearer_token'])}")
        return auth['bearer_token']

    if auth.get('email') and auth.get('password'):
        logger.info("🔑 Authenticating with email and password...")
        return login(
            config['api']['uri'],
            auth['email'],
            auth['password'],
            verify_ssl=config['api']['verify_ssl'],
        )

    raise AuthenticationError("No authentication credentials provided")
