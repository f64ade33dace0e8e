import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from calsync.base.config import AppConfig, get_settings
from calsync.base.models import CredentialsRequest, LoginResponse, MessageResponse
from calsync.base.security import create_access_token, hash_password, verify_password
from calsync.models.user_model import UserModel

logger = logging.getLogger("app")


class AuthService:
    def __init__(self, settings: Optional[AppConfig] = None):
        self.settings = settings or get_settings()

    def register(self, req: CredentialsRequest, db: Session) -> MessageResponse:
        if not req.email or not req.password:
            raise HTTPException(status_code=400, detail="Email and password required")

        if db.query(UserModel).filter_by(email=req.email).first():
            raise HTTPException(status_code=400, detail="Email already exists")

        db.add(UserModel(email=req.email, password=hash_password(req.password, self.settings.BCRYPT_ROUNDS)))
        try:
            db.commit()
        except IntegrityError:
            # lost a race with a concurrent registration
            db.rollback()
            raise HTTPException(status_code=400, detail="Email already exists")

        logger.info(f"[Auth] Registered {req.email}")
        return MessageResponse(message="User registered successfully")

    def login(self, req: CredentialsRequest, db: Session) -> LoginResponse:
        if not req.email or not req.password:
            raise HTTPException(status_code=400, detail="Email and password required")

        user = db.query(UserModel).filter_by(email=req.email).first()
        if not user:
            raise HTTPException(status_code=400, detail="User not found")
        if not verify_password(req.password, user.password):
            logger.warning(f"[Auth] Invalid password for {req.email}")
            raise HTTPException(status_code=400, detail="Invalid password")

        return LoginResponse(
            token=create_access_token(user.id, self.settings),
            user_id=user.id,
            email=user.email,
        )
