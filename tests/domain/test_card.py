"""Tests for the Card state machine and its scheduling rules."""

import random
from datetime import date, datetime, timedelta, timezone

import pytest

from quizleitner.domain.models import (
    AnswerOutcome,
    Card,
    Difficulty,
    Question,
    clamp_response_time,
    make_question_id,
)


def new_card(now, **state) -> Card:
    card = Card.new("Math:Addition", "Math", "Addition", now=now)
    for name, value in state.items():
        setattr(card, name, value)
    return card


class TestNewCard:
    def test_defaults(self, now):
        card = new_card(now)

        assert card.box == 1
        assert card.difficulty is Difficulty.MEDIUM
        assert card.total_attempts == 0
        assert card.consecutive_correct == 0
        assert card.consecutive_wrong == 0
        assert card.last_reviewed_at is None
        assert card.created_at == now
        assert card.next_review_date == now.date()

    def test_new_card_is_due_immediately(self, now):
        assert new_card(now).is_due(now.date())

    def test_question_id_is_topic_and_title(self):
        assert make_question_id("Math", "Addition") == "Math:Addition"
        assert Question(topic="Math", title="Addition").question_id == "Math:Addition"


class TestPromotion:
    def test_single_correct_never_promotes(self, now, flat_rng):
        card = new_card(now)

        card.apply_result(True, 10.0, rng=flat_rng, now=now)

        assert card.box == 1
        assert card.consecutive_correct == 1
        assert card.next_review_date == now.date() + timedelta(days=1)

    def test_two_correct_promote_from_box_one(self, now, flat_rng):
        card = new_card(now)

        card.apply_result(True, 10.0, rng=flat_rng, now=now)
        card.apply_result(True, 10.0, rng=flat_rng, now=now)

        assert card.box == 2
        assert card.consecutive_correct == 0
        assert card.difficulty is Difficulty.MEDIUM
        assert card.next_review_date == now.date() + timedelta(days=3)

    def test_four_correct_reach_box_three(self, now, flat_rng):
        card = new_card(now)

        for _ in range(4):
            card.apply_result(True, 10.0, rng=flat_rng, now=now)

        assert card.box == 3
        assert card.consecutive_correct == 0
        # 7 days * 1.0 difficulty * 1.3 performance (4/4 correct)
        assert card.next_review_date == now.date() + timedelta(days=9)

    def test_box_three_needs_three_in_a_row(self, now, flat_rng):
        card = new_card(now, box=3)

        card.apply_result(True, 10.0, rng=flat_rng, now=now)
        card.apply_result(True, 10.0, rng=flat_rng, now=now)
        assert card.box == 3

        card.apply_result(True, 10.0, rng=flat_rng, now=now)
        assert card.box == 4

    def test_fast_promotion_makes_card_easier(self, now, flat_rng):
        card = new_card(now)

        card.apply_result(True, 2.0, rng=flat_rng, now=now)
        card.apply_result(True, 2.0, rng=flat_rng, now=now)

        assert card.box == 2
        assert card.difficulty is Difficulty.EASY

    def test_slow_promotion_makes_card_harder(self, now, flat_rng):
        card = new_card(now)

        card.apply_result(True, 20.0, rng=flat_rng, now=now)
        card.apply_result(True, 20.0, rng=flat_rng, now=now)

        assert card.box == 2
        assert card.difficulty is Difficulty.HARD

    def test_high_box_blocks_slow_answers(self, now, flat_rng):
        card = new_card(now, box=4, consecutive_correct=3, total_attempts=9, total_correct=9)

        # MEDIUM expects 10s; more than twice that blocks promotion
        card.apply_result(True, 25.0, rng=flat_rng, now=now)

        assert card.box == 4
        assert card.consecutive_correct == 4

    def test_high_box_promotes_fast_accurate_answers(self, now, flat_rng):
        card = new_card(now, box=4, consecutive_correct=3, total_attempts=9, total_correct=9)

        card.apply_result(True, 10.0, rng=flat_rng, now=now)

        assert card.box == 5
        assert card.consecutive_correct == 0

    def test_high_box_blocks_low_success_rate(self, now, flat_rng):
        card = new_card(now, box=4, consecutive_correct=3, total_attempts=9, total_correct=5)

        card.apply_result(True, 10.0, rng=flat_rng, now=now)

        assert card.box == 4

    def test_top_box_stays_at_six(self, now, flat_rng):
        card = new_card(now, box=6, consecutive_correct=10, total_attempts=20, total_correct=20)

        card.apply_result(True, 5.0, rng=flat_rng, now=now)

        assert card.box == 6
        assert card.consecutive_correct == 11


class TestDemotion:
    def test_first_wrong_in_high_box_drops_two(self, now, flat_rng):
        card = new_card(now, box=5, difficulty=Difficulty.EASY)

        card.apply_result(False, 10.0, rng=flat_rng, now=now)

        assert card.box == 3
        assert card.difficulty is Difficulty.MEDIUM
        assert card.consecutive_wrong == 1

    def test_first_wrong_keeps_non_easy_difficulty(self, now, flat_rng):
        card = new_card(now, box=5, difficulty=Difficulty.HARD)

        card.apply_result(False, 10.0, rng=flat_rng, now=now)

        assert card.box == 3
        assert card.difficulty is Difficulty.HARD

    @pytest.mark.parametrize("box,expected", [(3, 2), (2, 1), (1, 1), (4, 2), (6, 4)])
    def test_first_wrong_steps(self, now, flat_rng, box, expected):
        card = new_card(now, box=box)

        card.apply_result(False, 10.0, rng=flat_rng, now=now)

        assert card.box == expected

    def test_second_wrong_resets_to_box_one(self, now, flat_rng):
        card = new_card(now, box=2)

        card.apply_result(False, 10.0, rng=flat_rng, now=now)
        card.apply_result(False, 10.0, rng=flat_rng, now=now)

        assert card.box == 1
        assert card.difficulty is Difficulty.HARD
        assert card.consecutive_wrong == 0

    def test_wrong_answer_breaks_streak(self, now, flat_rng):
        card = new_card(now)

        card.apply_result(True, 10.0, rng=flat_rng, now=now)
        card.apply_result(False, 10.0, rng=flat_rng, now=now)

        assert card.consecutive_correct == 0
        assert card.consecutive_wrong == 1
        assert card.total_attempts == 2
        assert card.total_correct == 1


class TestResponseTime:
    def test_first_answer_sets_average(self, now, flat_rng):
        card = new_card(now)

        card.apply_result(True, 10.0, rng=flat_rng, now=now)

        assert card.average_response_time_seconds == 10.0

    def test_moving_average(self, now, flat_rng):
        card = new_card(now)

        card.apply_result(True, 10.0, rng=flat_rng, now=now)
        card.apply_result(False, 20.0, rng=flat_rng, now=now)

        assert card.average_response_time_seconds == pytest.approx(13.0)

    def test_negative_time_is_clamped(self, now, flat_rng):
        card = new_card(now)

        card.apply_result(True, -5.0, rng=flat_rng, now=now)

        assert card.average_response_time_seconds == 0.0

    def test_idle_time_is_capped(self, now, flat_rng):
        card = new_card(now)

        card.apply_result(True, 4 * 3600.0, rng=flat_rng, now=now, max_response_time_seconds=600)

        assert card.average_response_time_seconds == 600.0

    def test_clamp_helper(self):
        assert clamp_response_time(-1.0, 60) == 0.0
        assert clamp_response_time(30.0, 60) == 30.0
        assert clamp_response_time(61.0, 60) == 60.0

    def test_outcome_converts_milliseconds(self):
        outcome = AnswerOutcome(topic="Math", question_title="Addition", correct=True,
                                answer_time_ms=2500)
        assert outcome.response_time_seconds == 2.5
        assert outcome.question_id == "Math:Addition"


class TestInterval:
    @pytest.mark.parametrize(
        "prior_correct,expected_days",
        [
            (8, 104),  # 9/10 correct -> x1.3
            (6, 80),  # 7/10 -> x1.0
            (4, 64),  # 5/10 -> x0.8
            (2, 48),  # 3/10 -> x0.6
        ],
    )
    def test_performance_factor(self, now, flat_rng, prior_correct, expected_days):
        card = new_card(now, box=6, total_attempts=9, total_correct=prior_correct)

        card.apply_result(True, 10.0, rng=flat_rng, now=now)

        assert card.next_review_date == now.date() + timedelta(days=expected_days)

    def test_difficulty_factor(self, now, flat_rng):
        card = new_card(now, box=6, difficulty=Difficulty.VERY_HARD, total_attempts=1,
                        total_correct=1, consecutive_correct=1)

        card.apply_result(True, 10.0, rng=flat_rng, now=now)

        # 80 * 0.3 * 1.0 (only 2 attempts)
        assert card.next_review_date == now.date() + timedelta(days=24)

    def test_interval_never_below_one_day(self, now, flat_rng):
        flat_rng.random.return_value = 0.0
        card = new_card(now, difficulty=Difficulty.VERY_HARD)

        card.apply_result(True, 10.0, rng=flat_rng, now=now)

        assert card.next_review_date == now.date() + timedelta(days=1)
        assert not card.is_due(now.date())

    def test_noise_stays_within_bounds(self, now):
        rng = random.Random(7)
        for _ in range(200):
            card = new_card(now, box=6, total_attempts=9, total_correct=6)
            card.apply_result(True, 10.0, rng=rng, now=now)
            days = (card.next_review_date - now.date()).days
            assert 68 <= days <= 92


class TestDueAndPriority:
    def test_due_is_inclusive(self, now):
        card = new_card(now, next_review_date=now.date())

        assert card.is_due(now.date())
        assert not card.is_due(now.date() - timedelta(days=1))
        assert card.is_due(now.date() + timedelta(days=5))

    def test_priority_of_fresh_card(self, now):
        card = new_card(now)

        assert card.priority(now.date()) == pytest.approx(6.3)

    def test_priority_grows_when_overdue(self, now):
        card = new_card(now, box=6, difficulty=Difficulty.EASY,
                        next_review_date=now.date() - timedelta(days=4))

        assert card.priority(now.date()) == pytest.approx(3.0)

    def test_harder_cards_rank_higher(self, now):
        easy = new_card(now, difficulty=Difficulty.EASY)
        hard = new_card(now, difficulty=Difficulty.VERY_HARD)

        assert hard.priority(now.date()) > easy.priority(now.date())


class TestDifficulty:
    def test_ordering(self):
        assert Difficulty.EASY < Difficulty.MEDIUM < Difficulty.HARD < Difficulty.VERY_HARD
        assert max(Difficulty) is Difficulty.VERY_HARD

    def test_steps_saturate(self):
        assert Difficulty.EASY.easier() is Difficulty.EASY
        assert Difficulty.VERY_HARD.harder() is Difficulty.VERY_HARD
        assert Difficulty.MEDIUM.easier() is Difficulty.EASY
        assert Difficulty.MEDIUM.harder() is Difficulty.HARD

    def test_payload(self):
        assert Difficulty.HARD.time_factor == 2.0
        assert Difficulty.HARD.display_name == "Hard"
        assert Difficulty.HARD.expected_response_seconds == 20.0
        assert Difficulty.EASY.interval_factor == 2.0
        assert Difficulty.VERY_HARD.rank == 3


def test_random_sequences_keep_invariants(now):
    rng = random.Random(1234)
    card = new_card(now)
    today = now.date()

    for step in range(500):
        correct = rng.random() < 0.65
        seconds = rng.uniform(-5.0, 90.0)
        card.apply_result(correct, seconds, rng=rng, now=now)

        assert 1 <= card.box <= 6
        assert card.consecutive_correct == 0 or card.consecutive_wrong == 0
        assert card.total_correct <= card.total_attempts
        assert card.next_review_date >= today + timedelta(days=1)
        assert card.total_attempts == step + 1


class TestValidationErrors:
    def test_fresh_card_is_consistent(self, now):
        assert new_card(now).validation_errors() == []

    @pytest.mark.parametrize(
        "state",
        [
            {"box": 0},
            {"box": 7},
            {"difficulty": "HARD"},
            {"total_attempts": -1},
            {"total_attempts": 2, "total_correct": 3},
            {"average_response_time_seconds": -1.0},
            {"created_at": datetime(2026, 3, 1, tzinfo=timezone.utc)},
            {"last_reviewed_at": datetime(2026, 3, 1, tzinfo=timezone.utc)},
        ],
    )
    def test_inconsistent_cards(self, now, state):
        assert new_card(now, **state).validation_errors()


def test_copy_is_detached(now, flat_rng):
    card = new_card(now)
    clone = card.copy()

    clone.apply_result(True, 10.0, rng=flat_rng, now=now)

    assert card.total_attempts == 0
    assert clone.total_attempts == 1
    assert card.next_review_date == date(2026, 3, 10)
