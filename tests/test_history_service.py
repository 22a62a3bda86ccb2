from datetime import datetime, timedelta, timezone

import pytest

from services.history_service import HistoryService
from utils.errors import NotFound
from utils.models import QuizResult

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_result(result_id, percentage, user_id="user-1", minutes=0):
    return QuizResult(
        id=result_id,
        user_id=user_id,
        session_id=f"session-{result_id}",
        file_name=f"{result_id}.pdf",
        total_questions=30,
        correct_answers=round(percentage * 30 / 100),
        wrong_answers=30 - round(percentage * 30 / 100),
        percentage=percentage,
        time_spent=600,
        completed_at=BASE_TIME + timedelta(minutes=minutes),
    )


@pytest.fixture
def history_service(result_store):
    return HistoryService(result_store)


def test_empty_history(history_service):
    stats = history_service.stats_for("user-1")

    assert (stats.total_quizzes, stats.average_score, stats.best_score) == (0, 0, 0)
    assert history_service.list_for("user-1") == []
    assert history_service.count_for("user-1") == 0


def test_statistics_round_half_up(result_store, history_service):
    result_store.save(make_result("a", 67, minutes=0))
    result_store.save(make_result("b", 50, minutes=1))

    stats = history_service.stats_for("user-1")

    assert stats.total_quizzes == 2
    assert stats.average_score == 59
    assert stats.best_score == 67


def test_statistics_only_count_own_results(result_store, history_service):
    result_store.save(make_result("a", 40))
    result_store.save(make_result("b", 100, user_id="user-2"))

    stats = history_service.stats_for("user-1")

    assert stats.total_quizzes == 1
    assert stats.best_score == 40


def test_results_newest_first_and_paged(result_store, history_service):
    for minutes in range(5):
        result_store.save(make_result(f"r{minutes}", 10 * minutes, minutes=minutes))

    first_page = history_service.list_for("user-1", page=1, limit=2)
    second_page = history_service.list_for("user-1", page=2, limit=2)
    last_page = history_service.list_for("user-1", page=3, limit=2)

    assert [r.id for r in first_page] == ["r4", "r3"]
    assert [r.id for r in second_page] == ["r2", "r1"]
    assert [r.id for r in last_page] == ["r0"]
    assert history_service.count_for("user-1") == 5


def test_get_result(result_store, history_service):
    result_store.save(make_result("mine", 80))

    assert history_service.get_result("mine", "user-1").percentage == 80


def test_foreign_or_unknown_result_is_not_found(result_store, history_service):
    result_store.save(make_result("theirs", 80, user_id="user-2"))

    with pytest.raises(NotFound):
        history_service.get_result("theirs", "user-1")
    with pytest.raises(NotFound):
        history_service.get_result("unknown", "user-1")


def test_results_are_insert_only(result_store):
    result_store.save(make_result("a", 50))

    with pytest.raises(ValueError):
        result_store.save(make_result("a", 90))
