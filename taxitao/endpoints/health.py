from fastapi import APIRouter
from sqlalchemy import text
from taxitao.core.db_session import SessionDep

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "taxitao"}


@router.get("/health/ready")
async def readiness_check(db: SessionDep):
    db.execute(text("SELECT 1"))
    return {"status": "ready", "service": "taxitao"}
