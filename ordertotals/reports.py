"""VAT reporting module.

This module aggregates stored order totals into the daily Z report
and the monthly VAT report. Reports sum the values persisted at
order time and never recompute VAT.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable

from .models import CENT, StoredOrder, format_money


def _sum(orders: list[StoredOrder], field_name: str) -> str:
    total = sum(
        (getattr(order, field_name) for order in orders),
        Decimal('0')
    )
    return format_money(total)


def _group_by(
    orders: list[StoredOrder],
    key: Callable[[StoredOrder], object]
) -> dict:
    groups = defaultdict(list)
    for order in orders:
        groups[key(order)].append(order)
    return groups


class VatReporter:
    """Builds VAT reports from stored orders.

    Cancelled orders and orders belonging to other tenants are
    always excluded.
    """

    def daily_z_report(
        self,
        orders: Iterable[StoredOrder],
        tenant_id: int,
        day: date
    ) -> dict:
        """Generate the daily Z report of a tenant.

        Args:
            orders: Stored orders to report on.
            tenant_id: Tenant whose orders are reported.
            day: The business day.

        Returns:
            Dictionary with the day's summary and its breakdowns by
            payment method and order type.
        """
        selected = [
            order for order in self._billable(orders, tenant_id)
            if order.created_at.date() == day
        ]

        by_payment_method = [
            {
                'payment_method': method,
                'order_count': len(group),
                'total_amount': _sum(group, 'grand_total'),
                'vat_amount': _sum(group, 'vat_amount'),
            }
            for method, group in sorted(
                _group_by(selected, lambda o: o.payment_method).items()
            )
        ]

        by_order_type = [
            {
                'type': order_type,
                'order_count': len(group),
                'total_amount': _sum(group, 'grand_total'),
            }
            for order_type, group in sorted(
                _group_by(selected, lambda o: o.type).items()
            )
        ]

        return {
            'date': day.isoformat(),
            'tenant_id': tenant_id,
            'summary': {
                'order_count': len(selected),
                'total_subtotal': _sum(selected, 'subtotal'),
                'total_discount': _sum(selected, 'discount'),
                'total_net_amount': _sum(selected, 'net_amount'),
                'total_vat_collected': _sum(selected, 'vat_amount'),
                'total_sales': _sum(selected, 'grand_total'),
            },
            'by_payment_method': by_payment_method,
            'by_order_type': by_order_type,
        }

    def monthly_vat_report(
        self,
        orders: Iterable[StoredOrder],
        tenant_id: int,
        date_from: date,
        date_to: date
    ) -> dict:
        """Generate the VAT report of a tenant for a date range.

        Args:
            orders: Stored orders to report on.
            tenant_id: Tenant whose orders are reported.
            date_from: First day of the period (inclusive).
            date_to: Last day of the period (inclusive).

        Returns:
            Dictionary with the period summary, a daily breakdown and
            a breakdown by VAT rate.

        Raises:
            ValueError: If date_from is after date_to.
        """
        if date_from > date_to:
            raise ValueError("Report start date must not be after its end date")

        selected = [
            order for order in self._billable(orders, tenant_id)
            if date_from <= order.created_at.date() <= date_to
        ]

        daily_breakdown = [
            {
                'date': day.isoformat(),
                'invoice_count': len(group),
                'taxable_sales': _sum(group, 'net_amount'),
                'vat_collected': _sum(group, 'vat_amount'),
                'total_sales': _sum(group, 'grand_total'),
                'discounts': _sum(group, 'discount'),
            }
            for day, group in sorted(
                _group_by(selected, lambda o: o.created_at.date()).items()
            )
        ]

        # One row per rate applied during the period.
        by_vat_rate = [
            {
                'vat_rate': format_money(rate),
                'invoice_count': len(group),
                'taxable_sales': _sum(group, 'net_amount'),
                'vat_collected': _sum(group, 'vat_amount'),
            }
            for rate, group in sorted(
                _group_by(selected, lambda o: o.vat_rate.quantize(CENT)).items()
            )
        ]

        return {
            'period': {
                'from': date_from.isoformat(),
                'to': date_to.isoformat(),
            },
            'tenant_id': tenant_id,
            'summary': {
                'total_invoices': len(selected),
                'total_subtotal': _sum(selected, 'subtotal'),
                'total_discount': _sum(selected, 'discount'),
                'total_taxable_sales': _sum(selected, 'net_amount'),
                'total_vat_collected': _sum(selected, 'vat_amount'),
                'total_sales': _sum(selected, 'grand_total'),
            },
            'daily_breakdown': daily_breakdown,
            'by_vat_rate': by_vat_rate,
        }

    @staticmethod
    def _billable(
        orders: Iterable[StoredOrder],
        tenant_id: int
    ) -> list[StoredOrder]:
        return [
            order for order in orders
            if order.tenant_id == tenant_id and not order.is_cancelled
        ]
