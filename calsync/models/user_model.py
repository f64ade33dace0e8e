# calsync/models/user_model.py

from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime

from calsync.base.database import Base


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False)
    password = Column(String(255), nullable=True)  # bcrypt hash
    google_token = Column(Text, nullable=True)
    outlook_token = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
