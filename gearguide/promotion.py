from __future__ import annotations

import logging
import random
import string
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol
from zoneinfo import ZoneInfo

from .intents import PromotionRequestIntent
from .models import Message

logger = logging.getLogger("gearguide.promotion")

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_SUFFIX_LENGTH = 6


class Clock(Protocol):
    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""
        ...


class SystemClock:
    """Wall clock in UTC; the policy converts to its own reference zone."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PromoCode:
    code: str
    valid_from: datetime
    valid_until: datetime


@dataclass(frozen=True)
class PromotionDecision:
    eligible: bool
    message: Message
    promo_code: Optional[PromoCode] = None


def format_hour(hour: int) -> str:
    """Render an hour of the day as "8:00 AM" style text."""
    suffix = "AM" if hour % 24 < 12 else "PM"
    display = hour % 12 or 12
    return f"{display}:00 {suffix}"


def zone_label(tz: ZoneInfo) -> str:
    """Short label for the advertised window, e.g. "PT" for America/Los_Angeles."""
    if tz.key == "America/Los_Angeles":
        return "PT"
    return tz.key


class PromotionPolicy:
    """Early Risers rule: a code is minted only inside a daily local-time window."""

    def __init__(
        self,
        clock: Clock,
        tz_name: str = "America/Los_Angeles",
        start_hour: int = 8,
        end_hour: int = 10,
        code_prefix: str = "EARLY10-",
        rng: Optional[random.Random] = None,
    ) -> None:
        """Purpose: Configure the promotion window and code minting.
        Inputs/Outputs: Inputs are a Clock, the reference time zone name, the
            half-open hour window [start_hour, end_hour), the code prefix and an
            optional random source; no return value.
        Side Effects / State: Resolves the time zone once.
        Dependencies: zoneinfo; SystemRandom unless rng is supplied.
        Failure Modes: Unknown zone names raise ZoneInfoNotFoundError; an empty or
            out-of-range window raises ValueError.
        If Removed: Promotion requests get no trusted answer.
        Testing Notes: Inject a fixed clock and a seeded Random.
        """
        if not 0 <= start_hour < end_hour <= 24:
            raise ValueError(f"invalid promotion window [{start_hour}, {end_hour})")
        self._clock = clock
        self._tz = ZoneInfo(tz_name)
        self._start_hour = start_hour
        self._end_hour = end_hour
        self._code_prefix = code_prefix
        self._rng = rng or random.SystemRandom()

    @property
    def window_text(self) -> str:
        return f"{format_hour(self._start_hour)} to {format_hour(self._end_hour)} {zone_label(self._tz)}"

    def local_now(self) -> datetime:
        return self._clock.now().astimezone(self._tz)

    def is_eligible(self, moment: datetime) -> bool:
        return self._start_hour <= moment.astimezone(self._tz).hour < self._end_hour

    def mint_code(self, moment: datetime) -> PromoCode:
        """Purpose: Create a presentational promo code valid for today's window.
        Inputs/Outputs: Input is the local moment of the request; returns PromoCode.
        Side Effects / State: Consumes randomness; nothing is stored.
        Dependencies: CODE_ALPHABET and the configured prefix.
        Failure Modes: None.
        If Removed: Eligible requests would have no code to announce.
        Testing Notes: Code matches prefix + 6 uppercase alphanumerics.
        """
        # No uniqueness or redemption tracking; the code only lives in the message.
        suffix = "".join(self._rng.choice(CODE_ALPHABET) for _ in range(CODE_SUFFIX_LENGTH))
        local = moment.astimezone(self._tz)
        day_start = local.replace(hour=0, minute=0, second=0, microsecond=0)
        return PromoCode(
            code=f"{self._code_prefix}{suffix}",
            valid_from=day_start + timedelta(hours=self._start_hour),
            valid_until=day_start + timedelta(hours=self._end_hour),
        )

    def evaluate(self, intent: PromotionRequestIntent) -> PromotionDecision:
        """Decide eligibility for a promotion request and build the fact message."""
        now = self.local_now()
        if not self.is_eligible(now):
            logger.info("promotion ineligible local_time=%s", now.isoformat())
            return PromotionDecision(
                eligible=False,
                message=Message.fact(
                    f"⛰️ The Early Risers Promotion is available from {self.window_text}. "
                    "You're outside that window, adventurer. But keep climbing to catch the next sunrise!"
                ),
            )

        promo_code = self.mint_code(now)
        logger.info("promotion eligible local_time=%s", now.isoformat())
        return PromotionDecision(
            eligible=True,
            message=Message.fact(
                f"EARLY RISERS PROMO: 10% OFF with code {promo_code.code} "
                f"(valid only {self.window_text})."
            ),
            promo_code=promo_code,
        )
