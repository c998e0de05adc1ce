from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./taxitao.db"
    JWT_SECRET_KEY: str
    PEPPER: str = ""
    TOKEN_DURATION: str = "60"
    REFRESH_TOKEN_DAYS: int = 30

    RESEND_API_KEY: str | None = None
    EMAIL_FROM: str = "TaxiTao <noreply@taxitao.co.ke>"
    FRONTEND_URL: str = "http://localhost:3000"

    CLOUDINARY_CLOUD_NAME: str | None = None
    CLOUDINARY_UPLOAD_PRESET: str | None = None
    GOOGLE_MAPS_API_KEY: str | None = None

    BOOKING_EXPIRY_MINUTES: int = 30
    NEGOTIATION_EXPIRY_MINUTES: int = 15

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:8081",
        "https://taxitao.co.ke",
    ]
    PUBLIC_PATHS: list[str] = [
        "/v1/auth/register",
        "/v1/auth/sign-in",
        "/v1/auth/refresh",
        "/v1/auth/verify-email",
        "/v1/auth/forgot-password",
        "/v1/auth/reset-password",
        "/v1/drivers/public",
        "/v1/drivers/live",
        "/v1/pricing/recommendations",
        "/v1/pricing/routes",
        "/health",
        "/docs",
        "/redoc",
        "/favicon.ico",
        "/openapi.json",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
