from __future__ import annotations

import logging
from typing import Optional, Protocol

from .intents import OrderLookupIntent, ProductLookupIntent
from .models import Message, Order, Product
from .utils import mask_email

logger = logging.getLogger("gearguide.resolver")


class OrderLookup(Protocol):
    def find(self, email: str, order_number: str) -> Optional[Order]:
        ...


class ProductLookup(Protocol):
    def find(self, sku: str) -> Optional[Product]:
        ...


class LocalFactResolver:
    """Turn order and SKU intents into trust-tagged fact messages."""

    def __init__(self, orders: OrderLookup, products: ProductLookup, tracking_url_template: str) -> None:
        self._orders = orders
        self._products = products
        self._tracking_url_template = tracking_url_template

    def resolve_order(self, intent: OrderLookupIntent) -> Message:
        """Purpose: Look up an order and describe its status as a local fact.
        Inputs/Outputs: Input is an OrderLookupIntent; output is an assistant Message
            tagged source=local with the status and tracking link, or a not-found note.
        Side Effects / State: One read-only call to the order lookup.
        Dependencies: OrderLookup collaborator and the tracking URL template.
        Failure Modes: Lookup errors propagate; a miss is not an error.
        If Removed: The model has no trusted order status to present.
        Testing Notes: Cover found with tracking, found without tracking, not found.
        """
        order = self._orders.find(intent.email, intent.order_number)
        if order is None:
            logger.info("order lookup miss email=%s order=%s", mask_email(intent.email), intent.order_number)
            return Message.fact(
                f"No order found for email={intent.email} and order #={intent.order_number}. Please verify."
            )

        logger.info("order lookup hit order=%s status=%s", intent.order_number, order.status)
        content = f"Order status for {intent.email}, {intent.order_number}: **{order.status}**."
        if order.tracking_number:
            tracking_url = self._tracking_url_template.format(tracking_number=order.tracking_number)
            content += f" Tracking link: {tracking_url}"
        else:
            content += " No tracking number available."
        return Message.fact(content)

    def resolve_product(self, intent: ProductLookupIntent) -> Message:
        """Describe stock for a SKU as a local fact."""
        product = self._products.find(intent.sku)
        if product is None:
            logger.info("product lookup miss sku=%s", intent.sku)
            return Message.fact(f"⛰️ Hm, we don't recognize SKU: {intent.sku}. Are you sure that's correct?")

        logger.info("product lookup hit sku=%s inventory=%s", product.sku, product.inventory_count)
        if product.inventory_count > 0:
            return Message.fact(
                f'Product "{product.name}" (SKU: {product.sku}) is in stock with '
                f"{product.inventory_count} units. Onward into the unknown!"
            )
        return Message.fact(
            f'Product "{product.name}" (SKU: {product.sku}) is currently out of stock. '
            "Keep exploring for new gear, adventurer!"
        )
