"""Order totals calculation module.

This module converts a cart of line items into a VAT-exclusive or
VAT-inclusive totals breakdown, net of a flat discount.

All arithmetic uses Decimal. Every derived amount is truncated toward
zero at two decimal places, so a VAT of 2.775 becomes 2.77.
"""

import logging
from collections.abc import Mapping
from decimal import Decimal, ROUND_DOWN, localcontext
from typing import Any, Iterable

from .models import (
    InputValidationError,
    LineItem,
    TenantVatSettings,
    TotalsResult,
    quantize_cents,
    round_half_up,
)

logger = logging.getLogger(__name__)

HUNDRED = Decimal('100')
ZERO = Decimal('0.00')
VAT_PRECISION = 60


def truncate(value: Decimal) -> Decimal:
    """Drop everything past the second decimal place."""
    return quantize_cents(value, ROUND_DOWN)


def _vat_share(basis: Decimal, rate: Decimal, denominator: Decimal) -> Decimal:
    # Exact product, and an inexact quotient must stay below the true value.
    with localcontext() as ctx:
        ctx.prec = VAT_PRECISION
        ctx.rounding = ROUND_DOWN
        return truncate(basis * rate / denominator)


def _coerce_item(item: Any) -> LineItem:
    if isinstance(item, LineItem):
        return item
    if isinstance(item, Mapping):
        return LineItem(unit_price=item['price'], quantity=item['qty'])
    price, qty = item
    return LineItem(unit_price=price, quantity=qty)


def compute_subtotal(items: Iterable[Any]) -> Decimal:
    """Sum unit_price * quantity over all items.

    The sum is accumulated at full precision and truncated once.

    Args:
        items: LineItem objects, {'price', 'qty'} mappings or (price, qty) pairs.

    Returns:
        The subtotal as a two-decimal Decimal.
    """
    total = sum(
        (_coerce_item(item).line_total for item in items),
        Decimal('0')
    )
    return truncate(total)


def compute_totals(
    items: Iterable[Any],
    vat_rate: Any,
    inclusive: bool,
    discount: Any = 0
) -> TotalsResult:
    """Compute the full totals breakdown of an order.

    Args:
        items: LineItem objects, {'price', 'qty'} mappings or (price, qty) pairs.
        vat_rate: VAT percentage, e.g. 5.00 for 5%.
        inclusive: True if prices already contain VAT.
        discount: Flat discount applied to the subtotal before VAT.

    Returns:
        A TotalsResult with six two-decimal amounts.

    Raises:
        InputValidationError: If the discount is negative or exceeds
            the subtotal.
    """
    subtotal = compute_subtotal(items)

    discount = round_half_up(discount)
    if discount < 0:
        raise InputValidationError('Discount cannot be negative.')
    if discount > subtotal:
        raise InputValidationError('Discount cannot exceed subtotal.')

    rate = round_half_up(vat_rate)
    basis = truncate(subtotal - discount)

    if rate == 0:
        vat_amount = ZERO
    elif inclusive:
        vat_amount = _vat_share(basis, rate, HUNDRED + rate)
    else:
        vat_amount = _vat_share(basis, rate, HUNDRED)

    if inclusive:
        net_amount = truncate(basis - vat_amount)
        grand_total = basis
    else:
        net_amount = basis
        grand_total = truncate(net_amount + vat_amount)

    result = TotalsResult(
        subtotal=subtotal,
        discount=discount,
        net_amount=net_amount,
        vat_rate=rate,
        vat_amount=vat_amount,
        grand_total=grand_total,
    )
    logger.debug(
        "Computed totals (%s): %s",
        'inclusive' if inclusive else 'exclusive',
        result.to_dict()
    )
    return result


class VatCalculator:
    """Stateless totals engine bound to tenant VAT settings."""

    def calculate(
        self,
        items: Iterable[Any],
        tenant: TenantVatSettings,
        discount: Any = 0
    ) -> TotalsResult:
        """Compute totals using the tenant's configured VAT rate and mode.

        Args:
            items: Cart line items.
            tenant: The restaurant's VAT settings.
            discount: Flat discount amount.

        Returns:
            A TotalsResult for the order.
        """
        return self.compute_totals(
            items,
            tenant.default_vat_rate,
            tenant.vat_inclusive,
            discount
        )

    def compute_totals(
        self,
        items: Iterable[Any],
        vat_rate: Any,
        inclusive: bool,
        discount: Any = 0
    ) -> TotalsResult:
        return compute_totals(items, vat_rate, inclusive, discount)

    def compute_subtotal(self, items: Iterable[Any]) -> Decimal:
        return compute_subtotal(items)
