from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from ..core.auth import CurrentUser, get_current_user
from ..dependencies import Services, get_services
from .envelope import success

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.get("")
async def list_conversations(
    limit: Optional[int] = Query(default=None, ge=1),
    skip: int = Query(default=0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    conversations = await services.conversations.list_conversations(user.userId, limit=limit, skip=skip)
    return success(conversations)


@router.get("/{conversation_id}")
async def get_conversation(
    conversation_id: str,
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    conversation = await services.conversations.get_conversation(conversation_id, user.userId)
    return success(conversation)
