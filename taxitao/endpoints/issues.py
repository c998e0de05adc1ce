import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlmodel import select
from taxitao.core.db_session import SessionDep
from taxitao.models.issue import CreateIssue, IssueStatusUpdate, IssueStatus
from taxitao.schemas.schemas import Issue
from taxitao.services.utils import AuthHelpers, Utils

logger = logging.getLogger(__name__)

auth = AuthHelpers()
utils = Utils()
router = APIRouter(prefix="/v1/issues", tags=["Issues"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def report_issue(data: CreateIssue, db: SessionDep, request: Request) -> Issue:
    user = request.state.user
    issue = Issue(
        **data.model_dump(),
        user_id=user["sub"],
        user_email=(user.get("metadata") or {}).get("email"),
    )
    db.add(issue)
    db.commit()
    db.refresh(issue)
    logger.info("Issue %s reported by %s", issue.id, issue.user_id)
    return issue


@router.get("/mine")
async def my_issues(db: SessionDep, request: Request) -> list[Issue]:
    return db.exec(
        select(Issue).where(Issue.user_id == request.state.user["sub"]).order_by(Issue.created_at.desc())
    ).all()


@router.get("")
async def list_issues(
    db: SessionDep,
    status_filter: IssueStatus | None = Query(default=None, alias="status"),
    user_data: dict = Depends(auth.verify_role(["admin"]))
) -> list[Issue]:
    stmt = select(Issue)
    if status_filter:
        stmt = stmt.where(Issue.status == status_filter)
    return db.exec(stmt.order_by(Issue.created_at.desc())).all()


@router.put("/{issue_id}/status")
async def set_issue_status(
    issue_id: str,
    data: IssueStatusUpdate,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["admin"]))
) -> Issue:
    issue = db.get(Issue, issue_id)
    if not issue:
        raise HTTPException(status_code=404, detail="Issue not found")

    issue.status = data.status
    issue.updated_at = utils.now_utc()
    db.add(issue)
    db.commit()
    db.refresh(issue)
    return issue
