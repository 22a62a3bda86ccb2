from typing import List

from logger import get_logger
from services.result_store import ResultStore
from utils.common import round_half_up
from utils.config import HISTORY_PAGE_SIZE
from utils.errors import NotFound
from utils.models import HistoryStatistics, QuizResult

logger = get_logger(__name__)


class HistoryService:
    """Read-side projection over stored results. Statistics are computed
    from the results on every read."""

    def __init__(self, result_store: ResultStore):
        self.result_store = result_store

    def stats_for(self, user_id: str) -> HistoryStatistics:
        percentages = self.result_store.percentages_for(user_id)
        if not percentages:
            return HistoryStatistics()
        return HistoryStatistics(
            total_quizzes=len(percentages),
            average_score=round_half_up(sum(percentages), len(percentages)),
            best_score=max(percentages),
        )

    def list_for(self, user_id: str, page: int = 1, limit: int = HISTORY_PAGE_SIZE) -> List[QuizResult]:
        skip = (max(page, 1) - 1) * limit
        return self.result_store.list_for(user_id, skip=skip, limit=limit)

    def count_for(self, user_id: str) -> int:
        return self.result_store.count_for(user_id)

    def get_result(self, result_id: str, user_id: str) -> QuizResult:
        result = self.result_store.get(result_id, user_id)
        if result is None:
            raise NotFound("Quiz result not found")
        return result
