"""Durable storage for scored quiz results.

Results are insert-only: they are written once by the scoring service and
afterwards only read by the history and result-detail views.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from pymongo import ASCENDING, DESCENDING

from db.mongo_db import MongoDB
from logger import get_logger
from utils.config import RESULT_COLLECTION
from utils.models import QuizResult

logger = get_logger(__name__)


class ResultStore(ABC):
    @abstractmethod
    def save(self, result: QuizResult) -> None:
        """Persists a new result. Saving an existing id is an error."""

    @abstractmethod
    def get(self, result_id: str, user_id: str) -> Optional[QuizResult]:
        """Returns the result if it exists and belongs to user_id."""

    @abstractmethod
    def list_for(self, user_id: str, skip: int = 0, limit: int = 20) -> List[QuizResult]:
        """Results of a user, most recently completed first."""

    @abstractmethod
    def count_for(self, user_id: str) -> int:
        """Number of results stored for a user."""

    @abstractmethod
    def percentages_for(self, user_id: str) -> List[int]:
        """Percentage scores of every result of a user."""


class InMemoryResultStore(ResultStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._results: Dict[str, QuizResult] = {}

    def save(self, result: QuizResult) -> None:
        with self._lock:
            if result.id in self._results:
                raise ValueError(f"Result {result.id} already exists")
            self._results[result.id] = result
        logger.info(f"Saved quiz result {result.id} for user {result.user_id}")

    def get(self, result_id: str, user_id: str) -> Optional[QuizResult]:
        with self._lock:
            result = self._results.get(result_id)
        if result is None or result.user_id != user_id:
            return None
        return result

    def _owned(self, user_id: str) -> List[QuizResult]:
        with self._lock:
            return [r for r in self._results.values() if r.user_id == user_id]

    def list_for(self, user_id: str, skip: int = 0, limit: int = 20) -> List[QuizResult]:
        results = sorted(self._owned(user_id), key=lambda r: r.completed_at, reverse=True)
        return results[skip : skip + limit]

    def count_for(self, user_id: str) -> int:
        return len(self._owned(user_id))

    def percentages_for(self, user_id: str) -> List[int]:
        return [r.percentage for r in self._owned(user_id)]


class MongoResultStore(ResultStore):
    def __init__(self, mongo: MongoDB, collection_name: str = RESULT_COLLECTION):
        self.mongo = mongo
        self.collection = mongo.get_collection(collection_name)
        self.collection.create_index(
            [("user_id", ASCENDING), ("completed_at", DESCENDING)]
        )

    @staticmethod
    def _to_document(result: QuizResult) -> dict:
        document = result.model_dump()
        document["_id"] = document.pop("id")
        return document

    @staticmethod
    def _from_document(document: dict) -> QuizResult:
        document = dict(document)
        document["id"] = str(document.pop("_id"))
        return QuizResult.model_validate(document)

    def save(self, result: QuizResult) -> None:
        self.collection.insert_one(self._to_document(result))
        logger.info(f"Saved quiz result {result.id} for user {result.user_id}")

    def get(self, result_id: str, user_id: str) -> Optional[QuizResult]:
        document = self.collection.find_one({"_id": result_id, "user_id": user_id})
        return self._from_document(document) if document else None

    def list_for(self, user_id: str, skip: int = 0, limit: int = 20) -> List[QuizResult]:
        cursor = (
            self.collection.find({"user_id": user_id})
            .sort("completed_at", DESCENDING)
            .skip(skip)
            .limit(limit)
        )
        return [self._from_document(document) for document in cursor]

    def count_for(self, user_id: str) -> int:
        return self.collection.count_documents({"user_id": user_id})

    def percentages_for(self, user_id: str) -> List[int]:
        cursor = self.collection.find({"user_id": user_id}, {"percentage": 1, "_id": 0})
        return [document["percentage"] for document in cursor]
