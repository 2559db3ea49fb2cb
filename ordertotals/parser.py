"""Order payload parsing module.

This module turns JSON and dictionary payloads into the typed
models used by the calculator, the billing flow and the reports.
"""

import json
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from .billing import OrderRequest
from .models import LineItem, StoredOrder, TenantVatSettings, Voucher, to_decimal


class OrderPayloadParser:
    """Parses order, tenant, voucher and stored order payloads."""

    TRUE_VALUES = ('true', '1', 'yes', 'on')
    FALSE_VALUES = ('false', '0', 'no', 'off', '')

    def parse_order_request(self, data: dict[str, Any]) -> OrderRequest:
        """Parse an order request from a dictionary.

        Args:
            data: Dictionary with keys:
                - items: List of {'price', 'qty'} dicts (required)
                - discount: Optional flat discount
                - vat_rate: Optional VAT percentage override
                - vat_inclusive: Optional VAT mode override
                - voucher: Optional voucher dict

        Returns:
            An OrderRequest ready for pricing.

        Raises:
            ValueError: If required fields are missing or invalid.
        """
        if not isinstance(data, dict):
            raise ValueError("Order payload must be an object")
        if 'items' not in data:
            raise ValueError("items is required")
        if not isinstance(data['items'], list):
            raise ValueError("items must be a list")

        discount = None
        if data.get('discount') is not None:
            discount = self._parse_amount(data['discount'])

        vat_rate = None
        if data.get('vat_rate') is not None:
            vat_rate = self._parse_amount(data['vat_rate'])

        vat_inclusive = None
        if data.get('vat_inclusive') is not None:
            vat_inclusive = self._parse_bool(data['vat_inclusive'])

        voucher = None
        if data.get('voucher') is not None:
            voucher = self.parse_voucher(data['voucher'])

        return OrderRequest(
            items=self.parse_items(data['items']),
            discount=discount,
            vat_rate=vat_rate,
            vat_inclusive=vat_inclusive,
            voucher=voucher
        )

    def parse_order_request_json(self, json_str: str) -> OrderRequest:
        """Parse an order request from a JSON string.

        Raises:
            ValueError: If JSON is invalid or data is missing.
        """
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON: {e}") from e

        return self.parse_order_request(data)

    def parse_items(self, items_data: list[dict]) -> list[LineItem]:
        """Parse cart line items.

        Accepts 'price'/'qty' keys as well as 'unit_price'/'quantity'.

        Args:
            items_data: List of dictionaries with line item data.

        Returns:
            List of LineItem objects.
        """
        line_items = []
        for index, item in enumerate(items_data, start=1):
            if not isinstance(item, dict):
                raise ValueError(f"Item {index} must be an object")

            price = item.get('price', item.get('unit_price'))
            if price is None:
                raise ValueError(f"Item {index} is missing a price")
            qty = item.get('qty', item.get('quantity', 1))

            line_items.append(LineItem(
                unit_price=self._parse_amount(price),
                quantity=self._parse_quantity(qty)
            ))

        return line_items

    def parse_tenant(self, data: dict[str, Any]) -> TenantVatSettings:
        """Parse tenant VAT settings."""
        if not isinstance(data, dict):
            raise ValueError("tenant must be an object")
        return TenantVatSettings(
            default_vat_rate=self._parse_amount(data.get('default_vat_rate', 0)),
            vat_inclusive=self._parse_bool(data.get('vat_inclusive', False)),
            tenant_id=data.get('tenant_id')
        )

    def parse_voucher(self, data: dict[str, Any]) -> Voucher:
        """Parse a voucher definition.

        Raises:
            ValueError: If code, discount_value or expiry_date is missing.
        """
        if not isinstance(data, dict):
            raise ValueError("voucher must be an object")
        for key in ('code', 'discount_value', 'expiry_date'):
            if data.get(key) in (None, ''):
                raise ValueError(f"voucher {key} is required")

        max_uses = data.get('max_uses')
        return Voucher(
            code=str(data['code']),
            discount_value=self._parse_amount(data['discount_value']),
            expiry_date=self._parse_date(data['expiry_date']),
            type=data.get('type', 'fixed'),
            min_purchase=self._parse_amount(data.get('min_purchase', 0)),
            is_active=self._parse_bool(data.get('is_active', True)),
            max_uses=int(max_uses) if max_uses is not None else None,
            used_count=int(data.get('used_count', 0))
        )

    def parse_stored_orders(self, orders_data: list[dict]) -> list[StoredOrder]:
        """Parse already-priced orders for reporting.

        Args:
            orders_data: List of order dicts carrying stored totals.

        Returns:
            List of StoredOrder objects.
        """
        if not isinstance(orders_data, list):
            raise ValueError("orders must be a list")

        orders = []
        for data in orders_data:
            if not isinstance(data, dict):
                raise ValueError("Each order must be an object")
            if data.get('tenant_id') is None:
                raise ValueError("tenant_id is required")
            if not data.get('created_at'):
                raise ValueError("created_at is required")

            amounts = {
                name: self._parse_amount(data.get(name, 0))
                for name in StoredOrder.MONEY_FIELDS
            }
            orders.append(StoredOrder(
                tenant_id=int(data['tenant_id']),
                created_at=self._parse_datetime(data['created_at']),
                status=data.get('status', 'completed'),
                payment_method=data.get('payment_method', 'cash'),
                type=data.get('type', 'dine'),
                **amounts
            ))

        return orders

    @staticmethod
    def _parse_amount(value: Any) -> Decimal:
        """Parse a value into a Decimal amount.

        Handles strings with currency symbols, commas, etc. A blank
        string counts as zero.

        Raises:
            ValueError: If value cannot be parsed or is not finite.
        """
        if isinstance(value, bool):
            raise ValueError(f"Unsupported type for amount: {type(value)}")

        if isinstance(value, (Decimal, int, float)):
            return to_decimal(value)

        if isinstance(value, str):
            if not value.strip():
                return Decimal('0')
            # Remove currency symbols, commas, and whitespace
            cleaned = re.sub(r'[^\d.eE+-]', '', value)
            try:
                return to_decimal(Decimal(cleaned))
            except InvalidOperation:
                raise ValueError(f"Cannot parse amount: {value}")

        raise ValueError(f"Unsupported type for amount: {type(value)}")

    @staticmethod
    def _parse_quantity(value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError(f"Invalid quantity: {value}")
        try:
            quantity = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Invalid quantity: {value}")
        if not quantity.is_finite() or quantity != quantity.to_integral_value():
            raise ValueError(f"Quantity must be a whole number: {value}")
        if quantity < 0:
            raise ValueError(f"Quantity cannot be negative: {value}")
        return int(quantity)

    @classmethod
    def _parse_bool(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in cls.TRUE_VALUES:
                return True
            if lowered in cls.FALSE_VALUES:
                return False
        raise ValueError(f"Cannot parse boolean: {value}")

    def parse_date(self, value: Any, field_name: str = 'date') -> date:
        """Parse a required ISO date (YYYY-MM-DD)."""
        if value in (None, ''):
            raise ValueError(f"{field_name} is required")
        return self._parse_date(value)

    @staticmethod
    def _parse_date(value: Any) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value))
        except ValueError as e:
            raise ValueError(f"Invalid date: {value}") from e

    @staticmethod
    def _parse_datetime(value: Any) -> datetime:
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        try:
            return datetime.fromisoformat(str(value))
        except ValueError as e:
            raise ValueError(f"Invalid datetime: {value}") from e

