import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["PEPPER"] = "test-pepper"
os.environ["RESEND_API_KEY"] = ""
os.environ["GOOGLE_MAPS_API_KEY"] = ""
os.environ["CLOUDINARY_CLOUD_NAME"] = ""
os.environ["CLOUDINARY_UPLOAD_PRESET"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from main import app
from taxitao.core.db_config import engine
from taxitao.schemas.schemas import Users, Driver
from taxitao.services.utils import AuthHelpers, Utils

auth = AuthHelpers()
utils = Utils()

PASSWORD = "Str0ng!Pass"


@pytest.fixture(autouse=True)
def reset_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(db):
    def _make(email="jane@example.com", role="customer", phone=None, verified=True) -> Users:
        user = Users(
            email=email,
            password_hash=auth.hash_password(PASSWORD),
            role=role,
            phone=phone,
            email_verified_at=utils.now_utc() if verified else None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def make_driver(db, make_user):
    counter = {"n": 0}

    def _make(location="Machakos Town", **fields) -> Driver:
        counter["n"] += 1
        n = counter["n"]
        user = make_user(email=f"driver{n}@example.com", role="driver")
        values = {
            "name": f"Driver {n}",
            "slug": f"driver-{n}",
            "phone": f"+25471100000{n}",
            "email": user.email,
            "status": "available",
            "subscription_status": "active",
            "current_location": location,
        }
        values.update(fields)
        driver = Driver(user_id=user.id, **values)
        db.add(driver)
        db.flush()
        user.driver_id = driver.id
        db.add(user)
        db.commit()
        db.refresh(driver)
        return driver
    return _make


def token_for(user: Users) -> str:
    return auth.encode_token(user.id, auth.session_metadata(user))["access_token"]


def headers_for(user: Users) -> dict:
    return {"Authorization": f"Bearer {token_for(user)}"}


@pytest.fixture
def driver_headers(db):
    def _headers(driver: Driver) -> dict:
        return headers_for(db.get(Users, driver.user_id))
    return _headers
