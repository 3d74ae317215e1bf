import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from ..core.auth import CurrentUser, get_current_user
from ..dependencies import Services, get_services
from ..orchestrator.stream import ProgressChannel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/execute", tags=["execution"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.post("")
async def execute_plan(
    body: Dict[str, Any],
    user: CurrentUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> StreamingResponse:
    # Not-found and already-executed are ordinary JSON errors, raised before the stream opens.
    plan = await services.executor.prepare(body.get("planId"), user.userId)

    channel = ProgressChannel()
    resources = services.resource_api_factory(user.token)
    task = asyncio.create_task(services.executor.execute(plan, body.get("confirmations"), resources, channel))
    services.track(task)
    logger.info("Started execution of plan %s for user %s", plan.id, user.userId)

    return StreamingResponse(channel.stream(), media_type="text/event-stream", headers=SSE_HEADERS)
