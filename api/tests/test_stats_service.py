from datetime import datetime, timedelta

from leitner_box.services.stats_service import compute_summary, same_local_day, resolve_timezone

NOW = datetime(2024, 1, 1, 10, 0)


def test_empty_card_set():
    summary = compute_summary([], NOW, "UTC")

    assert summary.total == 0
    assert summary.due_count == 0
    assert summary.upcoming_count == 0
    assert summary.ready_percentage == 0
    assert summary.average_accuracy == 0
    assert summary.last_review_at is None
    assert summary.stage_counts == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}


def test_due_and_upcoming_partition(make_card):
    cards = [
        make_card(word="ONE", next_review_at=NOW - timedelta(days=1)),
        make_card(word="TWO", next_review_at=NOW),
        make_card(word="THREE", next_review_at=NOW + timedelta(seconds=1)),
    ]

    summary = compute_summary(cards, NOW, "UTC")

    assert summary.total == 3
    assert summary.due_count == 2
    assert summary.upcoming_count == 1
    assert summary.due_count + summary.upcoming_count == summary.total
    assert summary.ready_percentage == 67


def test_stage_histogram_clamps_out_of_range_values(make_card):
    cards = [
        make_card(word="A", stage=1),
        make_card(word="B", stage=5),
        make_card(word="C", stage=9),
        make_card(word="D", stage=0),
        make_card(word="E", stage=3),
    ]

    summary = compute_summary(cards, NOW, "UTC")

    assert summary.stage_counts == {1: 2, 2: 0, 3: 1, 4: 0, 5: 2}
    assert sum(summary.stage_counts.values()) == summary.total
    assert summary.mastered_count == 2


def test_today_counters_and_last_review(make_card):
    cards = [
        make_card(
            word="A",
            created_at=NOW - timedelta(days=3),
            last_reviewed_at=NOW - timedelta(hours=2),
        ),
        make_card(
            word="B",
            created_at=NOW - timedelta(hours=1),
            last_reviewed_at=NOW - timedelta(days=1),
        ),
        make_card(word="C", created_at=NOW - timedelta(days=1), last_reviewed_at=None),
    ]

    summary = compute_summary(cards, NOW, "UTC")

    assert summary.reviewed_today == 1
    assert summary.new_today == 1
    assert summary.last_review_at == NOW - timedelta(hours=2)


def test_today_follows_configured_timezone(make_card):
    # 23:30 UTC on Dec 31 is already Jan 1 in Tehran (UTC+3:30)
    late_evening = datetime(2023, 12, 31, 23, 30)
    card = make_card(last_reviewed_at=late_evening, created_at=late_evening)

    assert compute_summary([card], NOW, "UTC").reviewed_today == 0
    assert compute_summary([card], NOW, "Asia/Tehran").reviewed_today == 1


def test_review_totals_and_accuracy(make_card):
    cards = [
        make_card(word="A", repetitions=3, successful_reviews=2, failed_reviews=1),
        make_card(word="B", repetitions=5, successful_reviews=5, failed_reviews=0),
    ]

    summary = compute_summary(cards, NOW, "UTC")

    assert summary.total_reviews == 8
    assert summary.average_accuracy == 88


def test_ready_percentage_rounds_half_up(make_card):
    cards = [make_card(word=f"W{'X' * i}", next_review_at=NOW + timedelta(days=1)) for i in range(7)]
    cards.append(make_card(word="DUE", next_review_at=NOW))

    assert compute_summary(cards, NOW, "UTC").ready_percentage == 13


def test_same_local_day():
    tz = resolve_timezone("UTC")

    assert same_local_day(datetime(2024, 1, 1, 0, 0), datetime(2024, 1, 1, 23, 59), tz)
    assert not same_local_day(datetime(2024, 1, 1, 23, 59), datetime(2024, 1, 2, 0, 0), tz)


def test_default_timezone_comes_from_settings(make_card):
    card = make_card(last_reviewed_at=NOW)

    assert compute_summary([card], NOW).reviewed_today == 1
