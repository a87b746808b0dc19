import logging
from typing import Any, Optional

import jwt

from callback_tracker.core.errors import AuthError
from callback_tracker.metrics.prometheus import token_verification_failures_total

logger = logging.getLogger(__name__)

LOGIN_HOST = "https://login.microsoftonline.com"


def accepted_issuers(tenant_id: str) -> tuple[str, ...]:
    # v2.0 endpoint tokens and legacy v1.0 (sts.windows.net) tokens for the same tenant
    return (
        f"{LOGIN_HOST}/{tenant_id}/v2.0",
        f"https://sts.windows.net/{tenant_id}/",
    )


def jwks_url(tenant_id: str) -> str:
    return f"{LOGIN_HOST}/{tenant_id}/discovery/v2.0/keys"


class TokenVerifier:
    """Validates Azure AD access tokens against the tenant's published keys."""

    algorithms = ["RS256"]

    def __init__(
        self,
        tenant_id: str,
        audience: str,
        jwks_client: Optional[jwt.PyJWKClient] = None,
        timeout: float = 10.0,
    ):
        self.audience = audience
        self.issuers = accepted_issuers(tenant_id)
        # PyJWKClient fetches lazily on first use and refetches on an unknown kid.
        self.jwks_client = jwks_client or jwt.PyJWKClient(jwks_url(tenant_id), cache_keys=True, timeout=timeout)

    def verify(self, token: str) -> dict[str, Any]:
        try:
            signing_key = self.jwks_client.get_signing_key_from_jwt(token)
            claims = jwt.decode(
                token,
                signing_key.key,
                algorithms=self.algorithms,
                audience=self.audience,
                options={"require": ["exp", "iss", "aud"]},
            )
        except jwt.PyJWTError as exc:
            # PyJWKClientError (key fetch / unknown kid) is a PyJWTError too: fail closed.
            token_verification_failures_total.inc()
            raise AuthError(f"token validation failed: {exc}") from exc

        issuer = claims.get("iss")
        if issuer not in self.issuers:
            token_verification_failures_total.inc()
            raise AuthError(f"token issuer not accepted: {issuer!r}")

        return claims
