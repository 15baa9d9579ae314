"""Directory client: best-effort access to the shared remote collections.

Every call may fail with a connectivity or permission problem; those surface
as ``DirectoryUnavailableError`` and callers decide whether to fall back to
the local cache or report the condition. Documents are validated against the
collection's model on the way in.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, ValidationError
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from app.core.errors import DirectoryUnavailableError, MalformedDocumentError
from app.models.member import Member
from app.models.point_request import PointRequest
from app.models.recipe import RecipePost
from app.models.tarot_key import TarotKey

logger = logging.getLogger(__name__)

MEMBERS = "members"
RECIPES = "recipes"
TAROT_KEYS = "tarot_keys"
POINT_REQUESTS = "point_requests"

COLLECTION_MODELS: Dict[str, Type[BaseModel]] = {
    MEMBERS: Member,
    RECIPES: RecipePost,
    TAROT_KEYS: TarotKey,
    POINT_REQUESTS: PointRequest,
}

SnapshotHandler = Callable[[List[Any]], Union[None, Awaitable[None]]]
ErrorHandler = Callable[[Exception], None]


@dataclass(frozen=True)
class DocumentRef:
    """Address of one document in a collection."""
    collection: str
    id: ObjectId


@dataclass
class Document:
    """A validated record together with its address."""
    ref: DocumentRef
    record: Any


class Subscription:
    """Handle for a live ordered snapshot feed."""

    def __init__(self, collection: str):
        self.collection = collection
        self._task: Optional[asyncio.Task] = None

    def _attach(self, task: asyncio.Task) -> None:
        self._task = task

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()


class DirectoryClient:
    """Motor-backed access to members, recipes, tarot keys and point requests."""

    def __init__(
        self,
        db: Optional[AsyncIOMotorDatabase],
        available: bool = True,
        change_streams: bool = True,
        poll_interval: float = 5.0,
    ):
        self.db = db
        self.available = available and db is not None
        self.change_streams = change_streams
        self.poll_interval = poll_interval

    def _collection(self, name: str):
        if not self.available:
            raise DirectoryUnavailableError()
        if name not in COLLECTION_MODELS:
            raise ValueError(f"Unknown collection: {name}")
        return self.db[name]

    def _validate(self, collection: str, doc: dict) -> Any:
        model = COLLECTION_MODELS[collection]
        try:
            return model.model_validate(doc)
        except ValidationError as e:
            raise MalformedDocumentError(
                f"Malformed document {doc.get('_id')} in {collection}: {e.error_count()} error(s)"
            ) from e

    def _to_document(self, collection: str, doc: dict) -> Document:
        return Document(
            ref=DocumentRef(collection=collection, id=doc["_id"]),
            record=self._validate(collection, doc),
        )

    async def find_one(self, collection: str, **filters: Any) -> Optional[Document]:
        """First document matching every exact-match filter, or None."""
        coll = self._collection(collection)
        try:
            doc = await coll.find_one(filters)
        except PyMongoError as e:
            raise DirectoryUnavailableError(f"Lookup in {collection} failed: {e}") from e
        if doc is None:
            return None
        return self._to_document(collection, doc)

    async def get(self, ref: DocumentRef) -> Optional[Document]:
        coll = self._collection(ref.collection)
        try:
            doc = await coll.find_one({"_id": ref.id})
        except PyMongoError as e:
            raise DirectoryUnavailableError(f"Lookup in {ref.collection} failed: {e}") from e
        if doc is None:
            return None
        return self._to_document(ref.collection, doc)

    async def find_all(self, collection: str, order_field: str) -> List[Any]:
        """One-shot snapshot ordered by ``order_field`` descending.

        Malformed documents are skipped.
        """
        coll = self._collection(collection)
        try:
            docs = await coll.find({}).sort(order_field, DESCENDING).to_list(length=None)
        except PyMongoError as e:
            raise DirectoryUnavailableError(f"Listing {collection} failed: {e}") from e

        records = []
        for doc in docs:
            try:
                records.append(self._validate(collection, doc))
            except MalformedDocumentError as e:
                logger.warning("%s", e)
        return records

    async def insert(self, collection: str, record: BaseModel) -> DocumentRef:
        coll = self._collection(collection)
        document = record.to_document()
        try:
            result = await coll.insert_one(document)
        except PyMongoError as e:
            raise DirectoryUnavailableError(f"Insert into {collection} failed: {e}") from e
        return DocumentRef(collection=collection, id=result.inserted_id)

    async def update_fields(self, ref: DocumentRef, fields: Dict[str, Any]) -> None:
        """Overwrite the given fields of one document (last write wins)."""
        coll = self._collection(ref.collection)
        try:
            await coll.update_one({"_id": ref.id}, {"$set": fields})
        except PyMongoError as e:
            raise DirectoryUnavailableError(f"Update in {ref.collection} failed: {e}") from e

    async def increment(self, ref: DocumentRef, field: str, amount: int = 1) -> None:
        """Additive server-side increment, safe under concurrent writers."""
        coll = self._collection(ref.collection)
        try:
            await coll.update_one({"_id": ref.id}, {"$inc": {field: amount}})
        except PyMongoError as e:
            raise DirectoryUnavailableError(f"Increment in {ref.collection} failed: {e}") from e

    def subscribe(
        self,
        collection: str,
        order_field: str,
        on_change: SnapshotHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Subscription:
        """Push the full ordered result set now and on every change.

        Uses a change stream when enabled, otherwise polls and pushes only
        when the snapshot differs from the last one delivered.
        """
        self._collection(collection)
        subscription = Subscription(collection)
        runner = self._watch if self.change_streams else self._poll
        task = asyncio.create_task(runner(collection, order_field, on_change, on_error))
        subscription._attach(task)
        return subscription

    async def _deliver(self, on_change: SnapshotHandler, records: List[Any]) -> None:
        result = on_change(records)
        if asyncio.iscoroutine(result):
            await result

    async def _watch(self, collection, order_field, on_change, on_error) -> None:
        coll = self._collection(collection)
        try:
            await self._deliver(on_change, await self.find_all(collection, order_field))
            async with coll.watch() as stream:
                async for _ in stream:
                    await self._deliver(on_change, await self.find_all(collection, order_field))
        except asyncio.CancelledError:
            raise
        except (PyMongoError, DirectoryUnavailableError) as e:
            self._stopped(collection, e, on_error)
        except Exception as e:
            logger.exception("Subscription handler for %s failed", collection)
            self._stopped(collection, e, on_error)

    def _stopped(self, collection: str, error: Exception, on_error: Optional[ErrorHandler]) -> None:
        logger.warning("Subscription to %s stopped: %s", collection, error)
        if on_error is not None:
            on_error(error)

    async def _poll(self, collection, order_field, on_change, on_error) -> None:
        last: Optional[List[dict]] = None
        try:
            while True:
                records = await self.find_all(collection, order_field)
                dumped = [r.model_dump() for r in records]
                if dumped != last:
                    last = dumped
                    await self._deliver(on_change, records)
                await asyncio.sleep(self.poll_interval)
        except asyncio.CancelledError:
            raise
        except DirectoryUnavailableError as e:
            self._stopped(collection, e, on_error)
        except Exception as e:
            logger.exception("Subscription handler for %s failed", collection)
            self._stopped(collection, e, on_error)
