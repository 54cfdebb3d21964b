"""
Weekly availability slots for a user.
"""
import logging

from fastapi import APIRouter, Depends

from app import messages
from app.auth_utils import get_current_user, is_admin
from app.deps import get_request_id, get_store
from app.errors import AVAILABILITY_SERVER_ERROR, FORBIDDEN, AccountError, handler_errors
from app.schemas import AvailabilityBody, AvailabilityOut, MessageOut
from core.database import AccountStore

log = logging.getLogger("app.routes.availability")

router = APIRouter()


def _require_self_or_admin(current_user: dict, user_id: str) -> None:
    if current_user.get("userid") == user_id:
        return
    if is_admin(current_user):
        return
    raise AccountError(403, FORBIDDEN)


@router.post("/user/{user_id}/availability", response_model=MessageOut)
def set_availability(
    user_id: str,
    body: AvailabilityBody,
    request_id: str = Depends(get_request_id),
    store: AccountStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    _require_self_or_admin(current_user, user_id)
    log.info("[%s] availability update userid=%s slots=%d", request_id, user_id, len(body.timeSlots))
    with handler_errors(request_id, AVAILABILITY_SERVER_ERROR):
        store.replace_availability(user_id, [slot.model_dump() for slot in body.timeSlots])
    return messages.message(messages.AVAILABILITY_CREATED)


@router.get("/user/{user_id}/availability", response_model=AvailabilityOut)
def get_availability(
    user_id: str,
    request_id: str = Depends(get_request_id),
    store: AccountStore = Depends(get_store),
    current_user: dict = Depends(get_current_user),
):
    _require_self_or_admin(current_user, user_id)
    with handler_errors(request_id, AVAILABILITY_SERVER_ERROR):
        rows = store.get_availability(user_id)
    return {
        "timeSlots": [
            {"dayOfWeek": r["day_of_week"], "startTime": r["start_time"], "endTime": r["end_time"]} for r in rows
        ]
    }
