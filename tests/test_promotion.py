"""Tests for the Early Risers promotion window and code minting."""

import random
import re
from datetime import datetime, timezone

import pytest

from gearguide.intents import PromotionRequestIntent
from gearguide.promotion import PromotionPolicy, SystemClock, format_hour

from conftest import FixedClock, pacific

CODE_RE = re.compile(r"EARLY10-[A-Z0-9]{6}")


def _policy(moment, **kwargs) -> PromotionPolicy:
    return PromotionPolicy(clock=FixedClock(moment), **kwargs)


@pytest.mark.parametrize("hour, minute", [(8, 0), (9, 30), (9, 59)])
def test_eligible_inside_window(hour, minute):
    decision = _policy(pacific(hour, minute), rng=random.Random(7)).evaluate(PromotionRequestIntent())
    assert decision.eligible
    assert decision.message.is_fact
    assert CODE_RE.search(decision.message.content)
    assert decision.promo_code.code in decision.message.content


@pytest.mark.parametrize("hour, minute", [(7, 59), (10, 0), (14, 0), (0, 0)])
def test_ineligible_outside_window(hour, minute):
    decision = _policy(pacific(hour, minute)).evaluate(PromotionRequestIntent())
    assert not decision.eligible
    assert decision.promo_code is None
    assert decision.message.is_fact
    assert "8:00 AM to 10:00 AM PT" in decision.message.content
    assert "EARLY10-" not in decision.message.content


def test_window_uses_reference_zone_not_clock_zone():
    # 16:30 UTC is 09:30 in Los Angeles during daylight time.
    moment = datetime(2026, 7, 1, 16, 30, tzinfo=timezone.utc)
    assert _policy(moment).evaluate(PromotionRequestIntent()).eligible
    assert not _policy(moment, tz_name="Europe/London").evaluate(PromotionRequestIntent()).eligible


def test_code_shape_and_validity_window():
    policy = _policy(pacific(9), rng=random.Random(1))
    code = policy.mint_code(pacific(9))
    assert CODE_RE.fullmatch(code.code)
    assert code.valid_from == pacific(8)
    assert code.valid_until == pacific(10)


def test_seeded_rng_is_reproducible():
    first = _policy(pacific(9), rng=random.Random(42)).mint_code(pacific(9))
    second = _policy(pacific(9), rng=random.Random(42)).mint_code(pacific(9))
    assert first.code == second.code


def test_custom_window_and_prefix():
    policy = _policy(pacific(13), start_hour=13, end_hour=15, code_prefix="LUNCH5-")
    decision = policy.evaluate(PromotionRequestIntent())
    assert decision.eligible
    assert decision.promo_code.code.startswith("LUNCH5-")
    assert policy.window_text == "1:00 PM to 3:00 PM PT"


@pytest.mark.parametrize("start, end", [(10, 8), (8, 8), (-1, 4), (20, 25)])
def test_invalid_window_rejected(start, end):
    with pytest.raises(ValueError):
        _policy(pacific(9), start_hour=start, end_hour=end)


def test_format_hour():
    assert format_hour(0) == "12:00 AM"
    assert format_hour(8) == "8:00 AM"
    assert format_hour(12) == "12:00 PM"
    assert format_hour(23) == "11:00 PM"


def test_system_clock_is_timezone_aware():
    assert SystemClock().now().tzinfo is not None
