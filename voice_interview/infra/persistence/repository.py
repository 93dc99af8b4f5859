"""
Voice Interview - Interview Record Repository.

MongoDB access for the durable records the interview flow reads and
updates: interview configurations, per-attempt results and the candidate
directory. Every update is a single-document atomic operation
($set / $push / $inc), never a read-modify-write.

Usage:
    repo = InterviewRepository.from_settings()

    config = await repo.get_interview(session_id)
    updated = await repo.complete_result(record_id, feedback, video_url, transcript)
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient, ReturnDocument
from pymongo.database import Database

from voice_interview.core.config import get_settings

logger = logging.getLogger(__name__)


INTERVIEWS = "interviews"
RESULTS = "interviewresults"
CANDIDATES = "candidates"


def _object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def to_jsonable(value: Any) -> Any:
    """Convert a Mongo document into plain JSON-serializable data."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


class InterviewRepository:
    """Durable interview record store backed by MongoDB."""

    def __init__(self, database: Database):
        self._db = database

    @classmethod
    def from_settings(cls) -> "InterviewRepository":
        settings = get_settings()
        client = MongoClient(settings.MONGODB_URI, serverSelectionTimeoutMS=5000, tz_aware=True)
        logger.info(f"Interview repository using database: {settings.MONGODB_DATABASE}")
        return cls(client.get_database(settings.MONGODB_DATABASE))

    def close(self) -> None:
        self._db.client.close()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _find_by_id(self, collection: str, record_id: str) -> Optional[dict]:
        oid = _object_id(record_id)
        if oid is None:
            return None
        doc = self._db[collection].find_one({"_id": oid})
        return to_jsonable(doc) if doc else None

    async def get_candidate(self, candidate_id: str) -> Optional[dict]:
        return await asyncio.to_thread(self._find_by_id, CANDIDATES, candidate_id)

    async def get_interview(self, session_id: str) -> Optional[dict]:
        return await asyncio.to_thread(self._find_by_id, INTERVIEWS, session_id)

    # -------------------------------------------------------------------------
    # Atomic Updates
    # -------------------------------------------------------------------------

    def _update_by_id(self, collection: str, record_id: str, update: dict) -> Optional[dict]:
        oid = _object_id(record_id)
        if oid is None:
            return None
        doc = self._db[collection].find_one_and_update(
            {"_id": oid},
            update,
            return_document=ReturnDocument.AFTER,
        )
        return to_jsonable(doc) if doc else None

    async def complete_result(
        self,
        record_id: str,
        feedback: dict,
        video_url: str,
        transcript: list[dict],
    ) -> Optional[dict]:
        """Store feedback, video reference and transcript; mark the attempt complete."""
        update = {
            "$set": {
                "feedback": feedback,
                "videoUrl": video_url,
                "iscompleted": True,
                "transcript": transcript,
            }
        }
        return await asyncio.to_thread(self._update_by_id, RESULTS, record_id, update)

    async def push_completion(
        self, session_id: str, email: str, record_id: str
    ) -> Optional[dict]:
        """Append a completion marker onto the interview configuration record."""
        completion = {"email": email, "intreviewid": _object_id(record_id) or record_id}
        update = {"$push": {"usercompleteintreviewemailandid": completion}}
        return await asyncio.to_thread(self._update_by_id, INTERVIEWS, session_id, update)

    async def increment_attempts(self, candidate_id: str) -> Optional[dict]:
        update = {"$inc": {"numberofattempt": 1}}
        return await asyncio.to_thread(self._update_by_id, CANDIDATES, candidate_id, update)
