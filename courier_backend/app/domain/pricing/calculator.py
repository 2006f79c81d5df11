"""
Shipment Pricing Calculator.

Single home of the price formula:
    base_fee + weight * rate_per_kg + distance * rate_per_km
multiplied by the express multiplier for express deliveries.

Creation, edits and invoices all price through this module.
"""

from typing import Optional, List
from courier_backend.app.core.config import settings
from courier_backend.app.models.enums import DeliveryType
from courier_backend.app.schemas.invoice import PriceBreakdown, PriceLineItem


def _round_money(value: float) -> float:
    return round(value, 2)


class PricingCalculator:

    @staticmethod
    def compute_price(
        weight: Optional[float],
        distance: Optional[float],
        delivery_type: Optional[DeliveryType] = DeliveryType.NORMAL
    ) -> Optional[float]:
        """
        Compute the shipment price.

        Args:
            weight: Weight in kg (missing counts as 0 when distance is given)
            distance: Distance in km (missing counts as 0 when weight is given)
            delivery_type: NORMAL or EXPRESS (None is treated as NORMAL)

        Returns:
            Price rounded to cents, or None when both weight and distance are absent
        """
        if weight is None and distance is None:
            return None

        price = settings.base_fee + (weight or 0) * settings.rate_per_kg + (distance or 0) * settings.rate_per_km
        if delivery_type == DeliveryType.EXPRESS:
            price *= settings.express_multiplier

        return _round_money(price)

    @staticmethod
    def price_breakdown(
        weight: Optional[float],
        distance: Optional[float],
        delivery_type: Optional[DeliveryType] = DeliveryType.NORMAL
    ) -> Optional[PriceBreakdown]:
        """Invoice line items whose total matches compute_price."""
        total = PricingCalculator.compute_price(weight, distance, delivery_type)
        if total is None:
            return None

        weight = weight or 0
        distance = distance or 0
        items: List[PriceLineItem] = [
            PriceLineItem(description="Base Fee", amount=_round_money(settings.base_fee)),
            PriceLineItem(
                description=f"Weight Charge ({weight:g}kg x ${settings.rate_per_kg:g})",
                amount=_round_money(weight * settings.rate_per_kg)
            ),
            PriceLineItem(
                description=f"Distance Charge ({distance:g}km x ${settings.rate_per_km:g})",
                amount=_round_money(distance * settings.rate_per_km)
            ),
        ]
        subtotal = sum(item.amount for item in items)
        if delivery_type == DeliveryType.EXPRESS:
            items.append(PriceLineItem(
                description=f"Express Surcharge (x{settings.express_multiplier:g})",
                amount=_round_money(total - subtotal)
            ))

        return PriceBreakdown(items=items, total=total)
