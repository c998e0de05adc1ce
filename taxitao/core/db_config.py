from .config import Settings
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

settings = Settings()

URL = settings.DATABASE_URL

if URL.startswith("sqlite"):
    # In-memory databases must share one connection across threads
    if URL in ("sqlite://", "sqlite:///:memory:"):
        engine = create_engine(URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        engine = create_engine(URL, connect_args={"check_same_thread": False})
else:
    engine = create_engine(URL, pool_pre_ping=True)
