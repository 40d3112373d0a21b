"""Server-side hCaptcha verification."""

from __future__ import annotations

import httpx

from app.utils.errors import NetworkOrStoreError


class HCaptchaVerifier:
    """Check a proof token against the hCaptcha ``siteverify`` API."""

    def __init__(self, secret: str, verify_url: str, http: httpx.AsyncClient) -> None:
        self.secret = secret
        self.verify_url = verify_url
        self.http = http

    async def verify(self, token: str) -> bool:
        """Return True when hCaptcha confirms the token."""
        try:
            response = await self.http.post(
                self.verify_url,
                data={"secret": self.secret, "response": token},
            )
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise NetworkOrStoreError("Captcha service unavailable") from exc
        return bool(payload.get("success"))
