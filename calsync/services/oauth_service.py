import logging
from typing import Dict, Optional
from urllib.parse import urlencode

import httpx
from fastapi import HTTPException
from sqlalchemy.orm import Session

from calsync.base.config import AppConfig, get_settings
from calsync.base.models import MessageResponse
from calsync.models.user_model import UserModel
from calsync.providers.calendar_clients import GOOGLE, OUTLOOK

logger = logging.getLogger("calendar_sync")

# === Provider OAuth2 endpoints ===
OAUTH_PROVIDERS: Dict[str, Dict[str, str]] = {
    GOOGLE: {
        "label": "Google",
        "authorize_url": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_url": "https://oauth2.googleapis.com/token",
        "scope": "https://www.googleapis.com/auth/calendar",
        "token_column": "google_token",
    },
    OUTLOOK: {
        "label": "Outlook",
        "authorize_url": "https://login.microsoftonline.com/common/oauth2/v2.0/authorize",
        "token_url": "https://login.microsoftonline.com/common/oauth2/v2.0/token",
        "scope": "Calendars.ReadWrite offline_access",
        "token_column": "outlook_token",
    },
}


class OAuthService:
    """
    Connects an organizer's calendar via the OAuth2 authorization-code flow.

    The frontend sends the user to `authorize_url`, the provider redirects back
    to the frontend with a code, and the frontend posts that code here. Only the
    access token is kept; tokens are never refreshed.
    """

    def __init__(self, settings: Optional[AppConfig] = None, http_client: Optional[httpx.Client] = None):
        self.settings = settings or get_settings()
        self.http_client = http_client

    def _provider(self, provider: str) -> Dict[str, str]:
        config = OAUTH_PROVIDERS.get(provider)
        if config is None:
            raise HTTPException(status_code=404, detail=f"Unknown calendar provider: {provider}")
        return config

    def _credentials(self, provider: str) -> Dict[str, str]:
        if provider == GOOGLE:
            return {
                "client_id": self.settings.GOOGLE_CLIENT_ID,
                "client_secret": self.settings.GOOGLE_CLIENT_SECRET,
                "redirect_uri": self.settings.GOOGLE_REDIRECT_URI,
            }
        return {
            "client_id": self.settings.OUTLOOK_CLIENT_ID,
            "client_secret": self.settings.OUTLOOK_CLIENT_SECRET,
            "redirect_uri": self.settings.OUTLOOK_REDIRECT_URI,
        }

    def authorize_url(self, provider: str) -> str:
        config = self._provider(provider)
        creds = self._credentials(provider)
        params = {
            "client_id": creds["client_id"],
            "redirect_uri": creds["redirect_uri"],
            "response_type": "code",
            "scope": config["scope"],
        }
        if provider == GOOGLE:
            params["access_type"] = "offline"
        return f"{config['authorize_url']}?{urlencode(params)}"

    def exchange_code(self, provider: str, code: str) -> str:
        config = self._provider(provider)
        data = {
            **self._credentials(provider),
            "code": code,
            "grant_type": "authorization_code",
        }
        if provider == OUTLOOK:
            data["scope"] = config["scope"]

        try:
            if self.http_client is not None:
                response = self.http_client.post(config["token_url"], data=data)
            else:
                with httpx.Client(timeout=self.settings.HTTP_TIMEOUT_SECONDS) as client:
                    response = client.post(config["token_url"], data=data)
            response.raise_for_status()
            access_token = response.json().get("access_token")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[OAuth] {config['label']} token exchange failed: {e}")
            access_token = None

        if not access_token:
            raise HTTPException(status_code=400, detail=f"Failed to connect {config['label']} calendar")
        return access_token

    def connect(self, provider: str, user_id: int, code: Optional[str], db: Session) -> MessageResponse:
        config = self._provider(provider)
        if not code:
            raise HTTPException(status_code=400, detail="Authorization code required")

        user = db.get(UserModel, user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")

        access_token = self.exchange_code(provider, code)
        setattr(user, config["token_column"], access_token)
        db.commit()

        logger.info(f"[OAuth] {config['label']} calendar connected for user {user_id}")
        return MessageResponse(message=f"{config['label']} calendar connected")
