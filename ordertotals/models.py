"""Data models for order totals computation.

This module defines the data structures used to represent
order line items, computed totals, tenant VAT settings,
vouchers and already-priced orders.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN, ROUND_HALF_UP
from typing import Any, Optional


CENT = Decimal('0.01')


class InputValidationError(ValueError):
    """Raised when calculator inputs break a totals invariant."""


def to_decimal(value: Any) -> Decimal:
    """Convert a numeric value to Decimal without binary float artifacts.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"Not a number: {value}")
    if not value.is_finite():
        raise ValueError(f"Amount must be a finite number: {value}")
    return value


def quantize_cents(value: Decimal, rounding: str) -> Decimal:
    """Quantize to two decimals, dropping the sign of a zero result.

    Raises:
        ValueError: If the amount has too many digits to hold cents.
    """
    try:
        result = value.quantize(CENT, rounding=rounding)
    except InvalidOperation:
        raise ValueError(f"Amount out of range: {value}")
    if result == 0:
        return result.copy_abs()
    return result


def round_half_up(value: Any) -> Decimal:
    """Round a value to two decimals, halves away from zero."""
    return quantize_cents(to_decimal(value), ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    """Render a two-decimal amount as a plain fixed-point string."""
    return format(quantize_cents(value, ROUND_HALF_EVEN), 'f')


@dataclass
class LineItem:
    """Represents a single cart line.

    Attributes:
        unit_price: Price per unit
        quantity: Number of units (non-negative integer)
    """
    unit_price: Decimal
    quantity: int

    def __post_init__(self):
        """Normalise the price to Decimal and validate both fields."""
        self.unit_price = to_decimal(self.unit_price)
        if self.unit_price < 0:
            raise ValueError(f"unit_price cannot be negative: {self.unit_price}")

        if isinstance(self.quantity, bool):
            raise ValueError("quantity must be an integer")
        quantity = to_decimal(self.quantity)
        if quantity != quantity.to_integral_value():
            raise ValueError(f"quantity must be an integer: {self.quantity}")
        if quantity < 0:
            raise ValueError(f"quantity cannot be negative: {self.quantity}")
        self.quantity = int(quantity)

    @property
    def line_total(self) -> Decimal:
        """Exact line amount (unit_price * quantity)."""
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class TotalsResult:
    """Fully reconciled totals breakdown of an order.

    Every field is a Decimal quantized to exactly two places.

    Attributes:
        subtotal: Sum of all line amounts
        discount: Flat discount applied before VAT
        net_amount: VAT-exclusive amount after discount
        vat_rate: VAT percentage that was applied
        vat_amount: VAT added (exclusive) or extracted (inclusive)
        grand_total: Amount payable by the customer
    """
    subtotal: Decimal
    discount: Decimal
    net_amount: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    grand_total: Decimal

    def to_dict(self) -> dict:
        """Convert totals to dictionary format.

        Returns:
            Dictionary with every amount rendered as a "D.DD" string.
        """
        return {
            'subtotal': format_money(self.subtotal),
            'discount': format_money(self.discount),
            'net_amount': format_money(self.net_amount),
            'vat_rate': format_money(self.vat_rate),
            'vat_amount': format_money(self.vat_amount),
            'grand_total': format_money(self.grand_total),
        }


@dataclass
class TenantVatSettings:
    """VAT configuration of a restaurant tenant."""
    default_vat_rate: Decimal = Decimal('0.00')
    vat_inclusive: bool = False
    tenant_id: Optional[int] = None

    def __post_init__(self):
        self.default_vat_rate = to_decimal(self.default_vat_rate)


@dataclass
class Voucher:
    """Represents a tenant's discount voucher.

    Attributes:
        code: Code the customer enters at checkout
        discount_value: Flat amount or percentage, depending on type
        type: Either "fixed" or "percentage"
        min_purchase: Subtotal the order must reach for the voucher to apply
        expiry_date: Day from which the voucher no longer applies
        is_active: Whether the tenant has enabled the voucher
        max_uses: Usage limit (None or 0 means unlimited)
        used_count: Number of orders the voucher was applied to
    """
    code: str
    discount_value: Decimal
    expiry_date: date
    type: str = 'fixed'
    min_purchase: Decimal = Decimal('0.00')
    is_active: bool = True
    max_uses: Optional[int] = None
    used_count: int = 0

    TYPES = ('fixed', 'percentage')

    def __post_init__(self):
        """Ensure numeric fields are Decimal and the type is known."""
        self.discount_value = to_decimal(self.discount_value)
        self.min_purchase = to_decimal(self.min_purchase)
        if self.type not in self.TYPES:
            raise ValueError(f"Unknown voucher type: {self.type}")

    def is_expired(self, today: Optional[date] = None) -> bool:
        """Check whether the voucher has reached its expiry date.

        The expiry date is the first day the voucher no longer applies.
        """
        today = today or date.today()
        return self.expiry_date <= today

    def is_valid(self, today: Optional[date] = None) -> bool:
        """Check whether the voucher can be applied to a new order.

        Args:
            today: Reference date, defaults to the current date.

        Returns:
            True if the voucher is active, unexpired and under its usage limit.
        """
        if not self.is_active:
            return False
        if self.is_expired(today):
            return False
        if self.max_uses and self.used_count >= self.max_uses:
            return False
        return True

    def calculate_discount(self, subtotal: Any) -> Decimal:
        """Calculate the discount this voucher grants on a subtotal.

        Args:
            subtotal: Order subtotal before discount.

        Returns:
            Discount amount, never more than the subtotal.
        """
        subtotal = to_decimal(subtotal)
        if subtotal < self.min_purchase:
            return Decimal('0.00')

        if self.type == 'percentage':
            discount = round_half_up(subtotal * self.discount_value / Decimal('100'))
        else:
            discount = round_half_up(self.discount_value)

        return min(discount, round_half_up(subtotal))

    def increment_usage(self) -> None:
        """Record one more order paid with this voucher."""
        self.used_count += 1


@dataclass
class StoredOrder:
    """An order whose totals were already computed and persisted.

    Reports read these values as stored and never recompute VAT.
    """
    tenant_id: int
    created_at: datetime
    subtotal: Decimal
    discount: Decimal
    net_amount: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    grand_total: Decimal
    status: str = 'completed'
    payment_method: str = 'cash'
    type: str = 'dine'

    MONEY_FIELDS = (
        'subtotal', 'discount', 'net_amount',
        'vat_rate', 'vat_amount', 'grand_total',
    )

    def __post_init__(self):
        """Ensure all money fields are Decimal type."""
        for name in self.MONEY_FIELDS:
            setattr(self, name, to_decimal(getattr(self, name)))

    @property
    def is_cancelled(self) -> bool:
        """Cancelled orders are left out of every report."""
        return self.status == 'cancelled'

    @classmethod
    def from_totals(
        cls,
        totals: TotalsResult,
        tenant_id: int,
        created_at: datetime,
        **kwargs
    ) -> 'StoredOrder':
        """Build a stored order from a freshly computed totals result."""
        return cls(
            tenant_id=tenant_id,
            created_at=created_at,
            subtotal=totals.subtotal,
            discount=totals.discount,
            net_amount=totals.net_amount,
            vat_rate=totals.vat_rate,
            vat_amount=totals.vat_amount,
            grand_total=totals.grand_total,
            **kwargs
        )
