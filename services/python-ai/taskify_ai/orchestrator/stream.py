import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ..schemas.plan import ActionError, ExecutionOutcome, ExecutionProgress

logger = logging.getLogger(__name__)

EventType = Literal["progress", "complete", "error"]
TERMINAL_EVENTS = ("complete", "error")

_CLOSED = object()


class StreamEvent(BaseModel):
    type: EventType
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def terminal(self) -> bool:
        return self.type in TERMINAL_EVENTS

    @classmethod
    def progress(cls, progress: ExecutionProgress) -> "StreamEvent":
        return cls(type="progress", data=progress.model_dump(by_alias=True, exclude_none=True))

    @classmethod
    def complete(cls, outcome: ExecutionOutcome, message: str) -> "StreamEvent":
        data = outcome.model_dump()
        data["message"] = message
        return cls(type="complete", data=data)

    @classmethod
    def error(cls, message: str, error: Optional[str] = None) -> "StreamEvent":
        return cls(type="error", data={"success": False, "message": message, "error": error})

    def encode(self) -> bytes:
        return f"data: {json.dumps(self.model_dump(), default=str)}\n\n".encode("utf-8")


class ProgressChannel:
    """Write-only event channel for one execution request.

    ``emit`` after ``close`` (or after the client went away) is a no-op, so the
    execution engine never has to care whether anybody is still listening.
    """

    def __init__(self) -> None:
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()
        self._closed = False
        self._disconnected = False
        self.sent: List[StreamEvent] = []

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    def emit(self, event: StreamEvent) -> None:
        if self._closed:
            logger.debug("Dropped %s event on closed channel", event.type)
            return
        self.sent.append(event)
        self._queue.put_nowait(event)
        if event.terminal:
            self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def stream(self) -> AsyncIterator[bytes]:
        try:
            while True:
                item = await self._queue.get()
                if item is _CLOSED:
                    break
                yield item.encode()
        finally:
            if not self._closed:
                # Consumer left before the terminal event.
                self._disconnected = True
                self._closed = True
                logger.info("Progress stream consumer disconnected")


def action_errors_to_messages(errors: List[ActionError]) -> Optional[List[str]]:
    return [error.error for error in errors] if errors else None
