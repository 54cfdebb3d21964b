from fastapi import APIRouter

from app import messages
from app.schemas import MessageOut

router = APIRouter()


@router.get("/healthcheck", response_model=MessageOut)
def healthcheck():
    return messages.message(messages.HEALTHY)
