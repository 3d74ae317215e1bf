from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..core.auth import CurrentUser, get_current_user
from ..dependencies import Services, get_services
from .envelope import success

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("")
async def send_message(
    body: Dict[str, Any],
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    result = await services.conversations.submit_message(user.userId, body.get("message"), body.get("conversationId"))
    return success(result)


@router.post("/answer")
async def submit_answers(
    body: Dict[str, Any],
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    result = await services.conversations.submit_answers(user.userId, body.get("conversationId"), body.get("answers"))
    return success(result)
