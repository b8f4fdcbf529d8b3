from __future__ import annotations

import math

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from curvefund.ledger.constants import MAX_SUPPLY, TOKEN_UNIT
from curvefund.ledger.curve import CurveEngine, issued_for_raised
from curvefund.ledger.errors import InvalidAmount

GOAL = 100_000 * TOKEN_UNIT


def test_curve_starts_at_zero_and_completes_exactly_at_goal() -> None:
    assert issued_for_raised(0, GOAL) == 0
    assert issued_for_raised(GOAL, GOAL) == MAX_SUPPLY


def test_curve_completes_exactly_for_awkward_goals() -> None:
    for goal in (1, 3, 7, 10**6 + 1, 99_999_999_999_999_999_999, 10**40 + 17):
        assert issued_for_raised(goal, goal) == MAX_SUPPLY


def test_curve_matches_integer_sqrt_formula_at_sixty_percent() -> None:
    raised = 60_000 * TOKEN_UNIT
    expected = 500_000_000 * math.isqrt(6 * 10**35)
    assert issued_for_raised(raised, GOAL) == expected
    # sqrt(0.6) of the supply, give or take integer flooring
    assert abs(expected - int(MAX_SUPPLY * 0.7745966692414834)) < MAX_SUPPLY // 10**12


def test_quarter_of_goal_issues_half_the_supply() -> None:
    assert issued_for_raised(GOAL // 4, GOAL) == MAX_SUPPLY // 2


def test_earlier_contribution_buys_more_tokens() -> None:
    eng = CurveEngine(goal=GOAL)
    amount = 10_000 * TOKEN_UNIT
    early = eng.quote(0, amount).delta
    late = eng.quote(50_000 * TOKEN_UNIT, amount).delta
    assert early > late > 0


@settings(max_examples=200, deadline=None)
@given(
    a=st.integers(min_value=0, max_value=GOAL),
    b=st.integers(min_value=0, max_value=GOAL),
)
def test_curve_is_monotone_and_bounded(a: int, b: int) -> None:
    lo, hi = min(a, b), max(a, b)
    i_lo = issued_for_raised(lo, GOAL)
    i_hi = issued_for_raised(hi, GOAL)
    assert 0 <= i_lo <= i_hi <= MAX_SUPPLY


@settings(max_examples=100, deadline=None)
@given(goal=st.integers(min_value=1, max_value=10**45))
def test_any_positive_goal_reaches_max_supply(goal: int) -> None:
    assert issued_for_raised(goal, goal) == MAX_SUPPLY
    assert issued_for_raised(0, goal) == 0


def test_quote_caps_to_remaining_headroom() -> None:
    eng = CurveEngine(goal=GOAL)
    raised = 90_000 * TOKEN_UNIT
    q = eng.quote(raised, 50_000 * TOKEN_UNIT)
    assert q.accepted == 10_000 * TOKEN_UNIT
    assert q.new_raised == GOAL
    assert q.new_issued == MAX_SUPPLY
    assert q.delta == MAX_SUPPLY - issued_for_raised(raised, GOAL)


def test_quote_reports_zero_delta_for_dust() -> None:
    eng = CurveEngine(goal=10**40)
    q = eng.quote(0, 1)
    assert q.accepted == 1
    assert q.delta == 0


@pytest.mark.parametrize(
    "raised,goal",
    [
        (0, 0),
        (0, -5),
        (-1, GOAL),
        (GOAL + 1, GOAL),
        (True, GOAL),
        (1.5, GOAL),
        ("10", GOAL),
    ],
)
def test_invalid_curve_inputs_are_rejected(raised, goal) -> None:
    with pytest.raises(InvalidAmount) as ei:
        issued_for_raised(raised, goal)
    assert ei.value.code == "invalid_amount"


def test_engine_rejects_bad_parameters_up_front() -> None:
    with pytest.raises(InvalidAmount):
        CurveEngine(goal=0)
    with pytest.raises(InvalidAmount):
        CurveEngine(goal=GOAL, max_supply=0)


@pytest.mark.parametrize("offered", [0, -1, True])
def test_quote_rejects_non_positive_offers(offered) -> None:
    with pytest.raises(InvalidAmount):
        CurveEngine(goal=GOAL).quote(0, offered)
