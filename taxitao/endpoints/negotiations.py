from fastapi import APIRouter, Depends, Request, status
from sqlmodel import select
from taxitao.core.db_session import SessionDep
from taxitao.models.negotiation import CreateNegotiation, CounterOffer, DeclineOffer
from taxitao.schemas.schemas import Driver, Negotiation
from taxitao.services.utils import AuthHelpers
from taxitao.services.driver_service import get_driver_for_user, get_driver_or_404
from taxitao.services import negotiation_service

auth = AuthHelpers()
router = APIRouter(prefix="/v1/negotiations", tags=["Negotiations"])


def _driver_id_for(db, user: dict) -> str | None:
    return db.exec(select(Driver.id).where(Driver.user_id == user["sub"])).first()


def _load_for_actor(db, negotiation_id: str, user: dict) -> tuple[Negotiation, str]:
    negotiation = negotiation_service.get_negotiation_or_404(db, negotiation_id)
    actor = negotiation_service.actor_for(negotiation, user["sub"], _driver_id_for(db, user))
    return negotiation, actor


@router.post("", status_code=status.HTTP_201_CREATED)
async def open_negotiation(
    data: CreateNegotiation,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["customer"]))
) -> Negotiation:
    get_driver_or_404(db, data.driver_id)
    return negotiation_service.create_negotiation(
        db, data.booking_id, user_data["sub"], data.driver_id, data.proposed_price
    )


@router.get("/driver")
async def driver_negotiations(db: SessionDep, user_data: dict = Depends(auth.verify_role(["driver"]))) -> list[Negotiation]:
    driver = get_driver_for_user(db, user_data["sub"])
    return negotiation_service.get_driver_negotiations(db, driver.id)


@router.get("/{negotiation_id}")
async def get_negotiation(negotiation_id: str, db: SessionDep, request: Request) -> Negotiation:
    negotiation, _ = _load_for_actor(db, negotiation_id, request.state.user)
    negotiation_service.check_expiration(db, negotiation)
    return negotiation


@router.post("/{negotiation_id}/accept")
async def accept_offer(negotiation_id: str, db: SessionDep, request: Request) -> Negotiation:
    negotiation, actor = _load_for_actor(db, negotiation_id, request.state.user)
    return negotiation_service.accept_offer(db, negotiation, actor)


@router.post("/{negotiation_id}/decline")
async def decline_offer(negotiation_id: str, data: DeclineOffer, db: SessionDep, request: Request) -> Negotiation:
    negotiation, actor = _load_for_actor(db, negotiation_id, request.state.user)
    return negotiation_service.decline_offer(db, negotiation, actor, data.reason)


@router.post("/{negotiation_id}/counter")
async def counter_offer(negotiation_id: str, data: CounterOffer, db: SessionDep, request: Request) -> Negotiation:
    negotiation, actor = _load_for_actor(db, negotiation_id, request.state.user)
    return negotiation_service.counter_offer(db, negotiation, actor, data.price, data.message)
