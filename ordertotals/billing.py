"""Order pricing flow.

Combines cart items, tenant VAT settings and either a flat discount
or a voucher into a priced order.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from .calculator import VatCalculator, truncate
from .models import LineItem, TenantVatSettings, TotalsResult, Voucher, format_money

logger = logging.getLogger(__name__)


@dataclass
class OrderRequest:
    """A cart submitted for pricing.

    Attributes:
        items: Cart line items
        discount: Optional flat discount
        vat_rate: Overrides the tenant's VAT rate when set
        vat_inclusive: Overrides the tenant's VAT mode when set
        voucher: Optional voucher to derive the discount from
    """
    items: list[LineItem] = field(default_factory=list)
    discount: Optional[Decimal] = None
    vat_rate: Optional[Decimal] = None
    vat_inclusive: Optional[bool] = None
    voucher: Optional[Voucher] = None


@dataclass
class PricedOrder:
    """Totals of a priced order plus what produced them."""
    totals: TotalsResult
    line_totals: list[Decimal] = field(default_factory=list)
    voucher_code: Optional[str] = None

    def to_dict(self) -> dict:
        data = self.totals.to_dict()
        data['line_totals'] = [format_money(t) for t in self.line_totals]
        data['voucher_code'] = self.voucher_code
        return data


class BillingService:
    """Prices orders for a tenant."""

    def __init__(self, calculator: Optional[VatCalculator] = None):
        self.calculator = calculator or VatCalculator()

    def price_order(
        self,
        request: OrderRequest,
        tenant: TenantVatSettings,
        today: Optional[date] = None
    ) -> PricedOrder:
        """Price an order using the tenant's VAT settings.

        A valid voucher derives the discount from the subtotal and has
        its usage incremented. An invalid voucher is ignored.

        Args:
            request: The cart and its discount options.
            tenant: The restaurant's VAT settings.
            today: Reference date for voucher expiry checks.

        Returns:
            A PricedOrder with the reconciled totals.

        Raises:
            ValueError: If both a discount and a voucher are supplied.
            InputValidationError: If the discount is negative or
                exceeds the subtotal.
        """
        items = list(request.items)

        if request.voucher is not None and request.discount:
            raise ValueError("Provide either a discount or a voucher, not both.")

        vat_rate = (
            request.vat_rate if request.vat_rate is not None
            else tenant.default_vat_rate
        )
        vat_inclusive = (
            request.vat_inclusive if request.vat_inclusive is not None
            else tenant.vat_inclusive
        )

        discount: Any = request.discount or 0
        voucher_code = None
        voucher = request.voucher
        if voucher is not None:
            if voucher.is_valid(today):
                subtotal = self.calculator.compute_subtotal(items)
                discount = voucher.calculate_discount(subtotal)
                voucher_code = voucher.code
            else:
                logger.info("Voucher %s is not valid, ignoring it", voucher.code)

        totals = self.calculator.compute_totals(items, vat_rate, vat_inclusive, discount)

        if voucher_code is not None:
            voucher.increment_usage()

        return PricedOrder(
            totals=totals,
            line_totals=[truncate(item.line_total) for item in items],
            voucher_code=voucher_code,
        )
