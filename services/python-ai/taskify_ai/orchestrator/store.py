import asyncio
from typing import Any, Dict, Generic, List, Optional, Set, Tuple, Type, TypeVar

from pydantic import BaseModel

from ..schemas.chat import Conversation
from ..schemas.plan import ActionPlan

ModelT = TypeVar("ModelT", bound=BaseModel)

# (field, direction) with direction 1 for ascending and -1 for descending.
SortSpec = Tuple[str, int]


class DocumentStore(Generic[ModelT]):
    """In-process document collection keyed by ``id``.

    Documents are copied on the way in and out, so callers only change stored
    state through ``save``.
    """

    def __init__(self, model: Type[ModelT]) -> None:
        self._model = model
        self._docs: Dict[str, ModelT] = {}
        self._lock = asyncio.Lock()

    async def find_by_id(self, doc_id: str) -> Optional[ModelT]:
        async with self._lock:
            doc = self._docs.get(doc_id)
            return doc.model_copy(deep=True) if doc else None

    async def find(
        self,
        filters: Optional[Dict[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
        skip: int = 0,
        projection: Optional[Set[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Query documents; ``projection`` names fields to leave out of each result."""
        async with self._lock:
            docs = list(self._docs.values())
        if filters:
            docs = [doc for doc in docs if all(getattr(doc, key, None) == value for key, value in filters.items())]
        if sort:
            field, direction = sort
            docs.sort(key=lambda doc: getattr(doc, field), reverse=direction < 0)
        docs = docs[skip:]
        if isinstance(limit, int):
            docs = docs[:limit]
        return [doc.model_dump(exclude=projection) for doc in docs]

    async def save(self, doc: ModelT) -> ModelT:
        if not isinstance(doc, self._model):
            raise TypeError(f"Expected {self._model.__name__}, got {type(doc).__name__}")
        async with self._lock:
            self._docs[getattr(doc, "id")] = doc.model_copy(deep=True)
        return doc

    async def count(self) -> int:
        async with self._lock:
            return len(self._docs)


class ConversationStore(DocumentStore[Conversation]):
    def __init__(self) -> None:
        super().__init__(Conversation)


class ActionPlanStore(DocumentStore[ActionPlan]):
    def __init__(self) -> None:
        super().__init__(ActionPlan)
