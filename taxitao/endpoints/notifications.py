from fastapi import APIRouter, Depends, HTTPException, Request, status
from taxitao.core.db_session import SessionDep
from taxitao.schemas.schemas import Notification, DriverNotification
from taxitao.services.utils import AuthHelpers
from taxitao.services.driver_service import get_driver_for_user
from taxitao.services import notification_service

auth = AuthHelpers()
router = APIRouter(prefix="/v1/notifications", tags=["Notifications"])


@router.get("")
async def my_notifications(request: Request, db: SessionDep, unread_only: bool = False) -> dict:
    user_id = request.state.user["sub"]
    items = notification_service.list_notifications(db, user_id, unread_only)
    return {
        "data": items,
        "unread": notification_service.unread_count(db, user_id),
    }


@router.put("/read-all")
async def mark_all_read(request: Request, db: SessionDep) -> dict:
    count = notification_service.mark_all_read(db, Notification, "recipient_id", request.state.user["sub"])
    return {"updated": count}


@router.put("/{notification_id}/read")
async def mark_read(notification_id: str, request: Request, db: SessionDep) -> Notification:
    notification = db.get(Notification, notification_id)
    if not notification or notification.recipient_id != request.state.user["sub"]:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")

    notification.read = True
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


@router.get("/driver")
async def driver_notifications(
    db: SessionDep,
    unread_only: bool = False,
    user_data: dict = Depends(auth.verify_role(["driver"]))
) -> dict:
    driver = get_driver_for_user(db, user_data["sub"])
    return {
        "data": notification_service.list_driver_notifications(db, driver.id, unread_only),
        "unread": notification_service.driver_unread_count(db, driver.id),
    }


@router.put("/driver/read-all")
async def driver_mark_all_read(db: SessionDep, user_data: dict = Depends(auth.verify_role(["driver"]))) -> dict:
    driver = get_driver_for_user(db, user_data["sub"])
    count = notification_service.mark_all_read(db, DriverNotification, "driver_id", driver.id)
    return {"updated": count}


@router.put("/driver/{notification_id}/read")
async def driver_mark_read(
    notification_id: str,
    db: SessionDep,
    user_data: dict = Depends(auth.verify_role(["driver"]))
) -> DriverNotification:
    driver = get_driver_for_user(db, user_data["sub"])
    notification = db.get(DriverNotification, notification_id)
    if not notification or notification.driver_id != driver.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")

    notification.read = True
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification
