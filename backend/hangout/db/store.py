"""
Group persistence: the store contract, the MongoDB adapter and the retry policy
shared by every write path.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Awaitable, Callable, Protocol, TypeVar

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import AutoReconnect, DuplicateKeyError, OperationFailure, PyMongoError

from hangout.core.config import STORE_RETRY_ATTEMPTS, STORE_RETRY_BASE_DELAY, STORE_TIMEOUT_SECONDS
from hangout.core.errors import FatalStoreError, StoreError, TransientStoreConflict
from hangout.models import GeneratedItinerary, Group, MemberPreference, Vote

logger = logging.getLogger(__name__)

T = TypeVar("T")

WRITE_CONFLICT_CODE = 112
TRANSIENT_LABELS = ("TransientTransactionError", "UnknownTransactionCommitResult")


class GroupStore(Protocol):
    """
    Persistence contract. Preferences and votes are keyed by (group_id, member_id)
    and written with atomic upserts. Clearing the itinerary set also clears the
    group's votes, since vote indices refer to that set.
    """

    async def create_group(self, name: str | None = None) -> Group: ...

    async def get_group(self, code: str) -> Group | None: ...

    async def get_group_by_id(self, group_id: str) -> Group | None: ...

    async def upsert_member(self, pref: MemberPreference) -> MemberPreference: ...

    async def list_members(self, group_id: str) -> list[MemberPreference]: ...

    async def upsert_vote(self, group_id: str, member_id: str, itinerary_idx: int) -> Vote: ...

    async def list_votes(self, group_id: str) -> list[Vote]: ...

    async def clear_votes(self, group_id: str) -> int: ...

    async def save_itinerary_set(
        self, group_id: str, itineraries: list[GeneratedItinerary]
    ) -> None: ...

    async def get_itinerary_set(self, group_id: str) -> list[GeneratedItinerary] | None: ...

    async def clear_itinerary_set(self, group_id: str) -> None: ...


def translate_mongo_error(error: PyMongoError, operation: str) -> StoreError:
    """Map a driver error onto the retryable / fatal split."""
    transient = isinstance(error, AutoReconnect) or isinstance(error, DuplicateKeyError)
    if not transient and any(error.has_error_label(label) for label in TRANSIENT_LABELS):
        transient = True
    if not transient and isinstance(error, OperationFailure) and error.code == WRITE_CONFLICT_CODE:
        transient = True
    if transient:
        return TransientStoreConflict(f"{operation}: {error}")
    return FatalStoreError(f"{operation}: {error}")


@asynccontextmanager
async def _mongo_errors(operation: str):
    try:
        yield
    except PyMongoError as e:
        raise translate_mongo_error(e, operation) from e


async def with_store_retry(
    op: Callable[[], Awaitable[T]],
    *,
    attempts: int = STORE_RETRY_ATTEMPTS,
    base_delay: float = STORE_RETRY_BASE_DELAY,
    timeout: float | None = STORE_TIMEOUT_SECONDS,
    label: str = "store",
) -> T:
    """
    Run `op` retrying only TransientStoreConflict, with exponential backoff
    (base_delay * 2^(n-1)). Exhaustion and timeouts become FatalStoreError.
    `op` is called again on every attempt, so it must be an idempotent write.
    """
    attempts = max(1, attempts)
    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            if timeout is None:
                return await op()
            return await asyncio.wait_for(op(), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error("[%s] timed out after %ss", label, timeout)
            raise FatalStoreError(f"{label}: timed out after {timeout}s") from e
        except TransientStoreConflict as e:
            last_error = e
            if attempt >= attempts:
                break
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                "[%s] transient conflict (attempt %d/%d): %s; retrying in %.2fs",
                label,
                attempt,
                attempts,
                e,
                delay,
            )
            await asyncio.sleep(delay)

    logger.error("[%s] giving up after %d attempts: %s", label, attempts, last_error)
    raise FatalStoreError(f"{label}: retries exhausted ({last_error})") from last_error


def _strip_id(doc: dict | None) -> dict | None:
    if doc is None:
        return None
    doc = dict(doc)
    doc.pop("_id", None)
    return doc


class MongoGroupStore:
    """GroupStore over motor. One document per group, preference, vote and itinerary set."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self.db = db

    async def create_group(self, name: str | None = None) -> Group:
        group = Group(name=name)
        async with _mongo_errors("create_group"):
            await self.db.groups.insert_one(group.model_dump())
        return group

    async def get_group(self, code: str) -> Group | None:
        async with _mongo_errors("get_group"):
            doc = await self.db.groups.find_one({"code": code.strip().upper()})
        return Group.model_validate(_strip_id(doc)) if doc else None

    async def get_group_by_id(self, group_id: str) -> Group | None:
        async with _mongo_errors("get_group_by_id"):
            doc = await self.db.groups.find_one({"id": group_id})
        return Group.model_validate(_strip_id(doc)) if doc else None

    async def upsert_member(self, pref: MemberPreference) -> MemberPreference:
        payload = pref.model_dump()
        async with _mongo_errors("upsert_member"):
            doc = await self.db.preferences.find_one_and_update(
                {"group_id": pref.group_id, "member_id": pref.member_id},
                {"$set": payload},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        return MemberPreference.model_validate(_strip_id(doc))

    async def list_members(self, group_id: str) -> list[MemberPreference]:
        async with _mongo_errors("list_members"):
            cursor = self.db.preferences.find({"group_id": group_id}).sort("member_id", 1)
            docs = await cursor.to_list(length=None)
        return [MemberPreference.model_validate(_strip_id(d)) for d in docs]

    async def upsert_vote(self, group_id: str, member_id: str, itinerary_idx: int) -> Vote:
        vote = Vote(group_id=group_id, member_id=member_id, itinerary_idx=itinerary_idx)
        async with _mongo_errors("upsert_vote"):
            await self.db.votes.update_one(
                {"group_id": group_id, "member_id": member_id},
                {"$set": vote.model_dump()},
                upsert=True,
            )
        return vote

    async def list_votes(self, group_id: str) -> list[Vote]:
        async with _mongo_errors("list_votes"):
            docs = await self.db.votes.find({"group_id": group_id}).to_list(length=None)
        return [Vote.model_validate(_strip_id(d)) for d in docs]

    async def clear_votes(self, group_id: str) -> int:
        async with _mongo_errors("clear_votes"):
            result = await self.db.votes.delete_many({"group_id": group_id})
        return result.deleted_count

    async def save_itinerary_set(
        self, group_id: str, itineraries: list[GeneratedItinerary]
    ) -> None:
        async with _mongo_errors("save_itinerary_set"):
            await self.db.itinerary_sets.update_one(
                {"group_id": group_id},
                {
                    "$set": {
                        "group_id": group_id,
                        "itineraries": [it.model_dump(mode="json") for it in itineraries],
                        "updated_at": datetime.now(timezone.utc),
                    }
                },
                upsert=True,
            )

    async def get_itinerary_set(self, group_id: str) -> list[GeneratedItinerary] | None:
        async with _mongo_errors("get_itinerary_set"):
            doc = await self.db.itinerary_sets.find_one({"group_id": group_id})
        if not doc:
            return None
        return [GeneratedItinerary.model_validate(it) for it in doc.get("itineraries") or []]

    async def clear_itinerary_set(self, group_id: str) -> None:
        async with _mongo_errors("clear_itinerary_set"):
            await self.db.itinerary_sets.delete_one({"group_id": group_id})
            await self.db.votes.delete_many({"group_id": group_id})
