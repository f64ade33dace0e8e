# calsync/routers/auth.py


from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from calsync.base.database import get_db
from calsync.base.models import (
    AuthorizeUrlResponse,
    CredentialsRequest,
    LoginResponse,
    MessageResponse,
    OAuthCallbackRequest,
)
from calsync.base.security import get_current_user_id
from calsync.providers.calendar_clients import GOOGLE, OUTLOOK
from calsync.services import AuthService, OAuthService

router = APIRouter(tags=["Auth"])


def get_auth_service() -> AuthService:
    return AuthService()


def get_oauth_service() -> OAuthService:
    return OAuthService()


# === Accounts ===

@router.post("/register", response_model=MessageResponse)
def register(req: CredentialsRequest, db: Session = Depends(get_db),
             service: AuthService = Depends(get_auth_service)):
    return service.register(req, db)


@router.post("/login", response_model=LoginResponse)
def login(req: CredentialsRequest, db: Session = Depends(get_db),
          service: AuthService = Depends(get_auth_service)):
    return service.login(req, db)


# === Calendar Connections ===

@router.get("/{provider}/authorize-url", response_model=AuthorizeUrlResponse)
def authorize_url(provider: str, user_id: int = Depends(get_current_user_id),
                  service: OAuthService = Depends(get_oauth_service)):
    return AuthorizeUrlResponse(provider=provider, url=service.authorize_url(provider))


@router.post("/google-callback", response_model=MessageResponse)
def google_callback(req: OAuthCallbackRequest, user_id: int = Depends(get_current_user_id),
                    db: Session = Depends(get_db), service: OAuthService = Depends(get_oauth_service)):
    return service.connect(GOOGLE, user_id, req.code, db)


@router.post("/outlook-callback", response_model=MessageResponse)
def outlook_callback(req: OAuthCallbackRequest, user_id: int = Depends(get_current_user_id),
                     db: Session = Depends(get_db), service: OAuthService = Depends(get_oauth_service)):
    return service.connect(OUTLOOK, user_id, req.code, db)
