import logging
from fastapi import FastAPI, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import SQLModel
from taxitao.core.config import Settings
from taxitao.core.db_config import engine
from taxitao.endpoints.auth import router as auth_router
from taxitao.endpoints.drivers import router as drivers_router
from taxitao.endpoints.bookings import router as bookings_router
from taxitao.endpoints.notifications import router as notifications_router
from taxitao.endpoints.pricing import router as pricing_router
from taxitao.endpoints.negotiations import router as negotiations_router
from taxitao.endpoints.issues import router as issues_router
from taxitao.endpoints.email import router as email_router
from taxitao.endpoints.uploads import router as uploads_router
from taxitao.endpoints.health import router as health_router
from taxitao.middlewares.middlewares import VerifyToken, RequestLoggerMiddleware, HTTPErrorHandler
from taxitao.services.utils import AuthHelpers
from taxitao.schemas import schemas  # noqa: F401  registers the tables

settings = Settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

SQLModel.metadata.create_all(engine)

auth = AuthHelpers()

app = FastAPI(title="TaxiTao API")


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(VerifyToken)
app.add_middleware(RequestLoggerMiddleware)
app.add_middleware(HTTPErrorHandler)

app.include_router(health_router)
app.include_router(auth_router)
app.include_router(drivers_router)
app.include_router(bookings_router)
app.include_router(notifications_router)
app.include_router(pricing_router)
app.include_router(negotiations_router)
app.include_router(issues_router)
app.include_router(email_router)
app.include_router(uploads_router)


@app.get("/", tags=["Root"])
async def get_root(request: Request, user: dict = Depends(auth.verify_role("admin"))):
    return {"data": {"service": "TaxiTao API", "user": user["sub"]}}
