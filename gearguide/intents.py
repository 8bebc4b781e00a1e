"""Structural intent extraction for the retail support assistant.

Every matcher here is a pure function of the latest user utterance. The three
matchers fire independently and each reports at most one intent: the first
match in the text wins. Nothing is remembered between turns, so an email sent
in one message and an order number in the next never combine into a lookup;
asking for the missing half is left to the model through the system prompt.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
ORDER_NUMBER_RE = re.compile(r"#[A-Z0-9]+\b", re.IGNORECASE)
SKU_RE = re.compile(r"SO[A-Za-z]{2,}\d{3,}")

PROMO_KEYWORDS: Tuple[str, ...] = (
    "early risers",
    "10% discount",
    "discount",
    "coupon",
)


@dataclass(frozen=True)
class OrderLookupIntent:
    email: str
    order_number: str


@dataclass(frozen=True)
class ProductLookupIntent:
    sku: str


@dataclass(frozen=True)
class PromotionRequestIntent:
    """Carries no slots; the keyword match is the whole request."""


Intent = Union[OrderLookupIntent, ProductLookupIntent, PromotionRequestIntent]


@dataclass(frozen=True)
class ExtractedIntents:
    """Intents found in one utterance, at most one of each kind."""
    order_lookup: Optional[OrderLookupIntent] = None
    promotion: Optional[PromotionRequestIntent] = None
    product_lookup: Optional[ProductLookupIntent] = None

    def in_resolution_order(self) -> List[Intent]:
        """Purpose: List present intents in the fixed order facts are injected.
        Inputs/Outputs: No inputs; returns order lookup, promotion, product lookup,
            skipping the ones that did not fire.
        Side Effects / State: None.
        Dependencies: Used by the orchestration loop's fact injection step.
        Failure Modes: None; returns an empty list when nothing matched.
        If Removed: Fact order would depend on call sites and tests would flake.
        Testing Notes: An utterance matching all three returns all three in order.
        """
        ordered: List[Optional[Intent]] = [self.order_lookup, self.promotion, self.product_lookup]
        return [intent for intent in ordered if intent is not None]

    def labels(self) -> List[str]:
        return [type(intent).__name__ for intent in self.in_resolution_order()]

    def __bool__(self) -> bool:
        return bool(self.in_resolution_order())


def match_order_lookup(utterance: str) -> Optional[OrderLookupIntent]:
    """Purpose: Detect an order-status request carrying both identifiers.
    Inputs/Outputs: Input is the raw utterance; output is an OrderLookupIntent with
        the first email and first "#" order token, verbatim, or None.
    Side Effects / State: None; pure function.
    Dependencies: EMAIL_RE and ORDER_NUMBER_RE.
    Failure Modes: Returns None when either identifier is missing.
    If Removed: Order status facts are never injected and the model has nothing
        trusted to ground order answers in.
    Testing Notes: "jane@example.com #AB123" yields both; email alone yields None.
    """
    # Both halves must appear in the same utterance.
    email_match = EMAIL_RE.search(utterance)
    order_match = ORDER_NUMBER_RE.search(utterance)
    if not email_match or not order_match:
        return None
    return OrderLookupIntent(email=email_match.group(0), order_number=order_match.group(0))


def match_product_lookup(utterance: str) -> Optional[ProductLookupIntent]:
    """Return a lookup for the first SKU-shaped token, such as SOWB004."""
    sku_match = SKU_RE.search(utterance)
    if not sku_match:
        return None
    return ProductLookupIntent(sku=sku_match.group(0))


def match_promotion_request(utterance: str) -> Optional[PromotionRequestIntent]:
    lowered = utterance.lower()
    if any(keyword in lowered for keyword in PROMO_KEYWORDS):
        return PromotionRequestIntent()
    return None


def extract_intents(utterance: str) -> ExtractedIntents:
    """Run all three matchers over one utterance."""
    if not utterance:
        return ExtractedIntents()
    return ExtractedIntents(
        order_lookup=match_order_lookup(utterance),
        promotion=match_promotion_request(utterance),
        product_lookup=match_product_lookup(utterance),
    )
