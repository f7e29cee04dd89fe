"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./invitations.db")

    # Security
    ADMIN_TOKEN: str = os.getenv("ADMIN_TOKEN", "admin_token_123")
    PAYMENT_SERVICE_TOKEN: str = os.getenv("PAYMENT_SERVICE_TOKEN", "payment_token_123")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5000",
        "http://localhost:8000",
    ]

    # Invitation card uploads
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB
    ALLOWED_IMAGE_TYPES: List[str] = ["image/jpeg", "image/png", "image/webp"]
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")

    # Guest rules
    ALLOWED_PHONE_COUNTRIES: List[str] = ["SA", "AE", "SY", "BH", "QA", "KW", "OM", "EG"]
    MAX_ACCOMPANYING_GUESTS: int = 10
    MAX_GUEST_NAME_LENGTH: int = 100

    # Collaboration limits per package
    MAX_COLLABORATORS_PREMIUM: int = 2
    MAX_COLLABORATORS_VIP: int = 10

    class Config:
        env_file = ".env"

settings = Settings()
