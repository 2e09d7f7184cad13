"""Google sign-in — verifies ID tokens against Google's tokeninfo endpoint."""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from backend.core.config import Settings
from backend.core.exceptions import AuthenticationError, IdentityProviderError

logger = logging.getLogger("saraha.identity")

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


@dataclass
class FederatedIdentity:
    email: str
    subject_id: str
    name: Optional[str] = None
    given_name: Optional[str] = None
    family_name: Optional[str] = None
    picture: Optional[str] = None


class GoogleIdentityProvider:
    """Turns a Google ID token into a verified identity."""

    def __init__(self, settings: Settings):
        self.client_id = settings.GOOGLE_CLIENT_ID
        self.tokeninfo_url = settings.GOOGLE_TOKENINFO_URL
        self.timeout = settings.IDENTITY_TIMEOUT_SECONDS

    def verify(self, id_token: str) -> FederatedIdentity:
        try:
            resp = httpx.get(
                self.tokeninfo_url,
                params={"id_token": id_token},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.error("Google tokeninfo request failed: %s", e)
            raise IdentityProviderError("Could not reach Google. Please try again later.")

        if resp.status_code != 200:
            raise AuthenticationError("Invalid Google Token")

        payload = resp.json()
        if (
            payload.get("aud") != self.client_id
            or payload.get("iss") not in GOOGLE_ISSUERS
            or not payload.get("email")
            or not payload.get("sub")
        ):
            raise AuthenticationError("Invalid Google Token")
        if str(payload.get("email_verified", "false")).lower() != "true":
            raise AuthenticationError("Google email is not verified")

        return FederatedIdentity(
            email=payload["email"].lower(),
            subject_id=payload["sub"],
            name=payload.get("name"),
            given_name=payload.get("given_name"),
            family_name=payload.get("family_name"),
            picture=payload.get("picture"),
        )
