"""Tests for VAT reports."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from ordertotals.calculator import compute_totals
from ordertotals.models import StoredOrder
from ordertotals.reports import VatReporter


def make_order(created_at, tenant_id=1, vat_rate='5.00', discount=0,
               status='completed', payment_method='cash', order_type='dine'):
    """Price a 200.00 order and store it the way the order flow does."""
    totals = compute_totals([('100.00', 2)], vat_rate, False, discount)
    return StoredOrder.from_totals(
        totals,
        tenant_id=tenant_id,
        created_at=created_at,
        status=status,
        payment_method=payment_method,
        type=order_type,
    )


class TestDailyZReport:
    """Tests for the daily Z report."""

    @pytest.fixture
    def reporter(self):
        """Create a VatReporter instance."""
        return VatReporter()

    @pytest.fixture
    def orders(self):
        """Orders of one day plus noise that must be excluded."""
        return [
            make_order(datetime(2026, 3, 1, 9, 0), payment_method='cash', order_type='dine'),
            make_order(datetime(2026, 3, 1, 20, 15), payment_method='card', order_type='parcel', discount=20),
            make_order(datetime(2026, 3, 1, 21, 0), status='cancelled'),
            make_order(datetime(2026, 3, 1, 12, 0), tenant_id=2),
            make_order(datetime(2026, 3, 2, 0, 5)),
        ]

    def test_summary_from_stored_values(self, reporter, orders):
        """Test the day's summary totals."""
        report = reporter.daily_z_report(orders, 1, date(2026, 3, 1))

        assert report['date'] == '2026-03-01'
        assert report['tenant_id'] == 1
        assert report['summary'] == {
            'order_count': 2,
            'total_subtotal': '400.00',
            'total_discount': '20.00',
            'total_net_amount': '380.00',
            'total_vat_collected': '19.00',
            'total_sales': '399.00',
        }

    def test_breakdown_by_payment_method(self, reporter, orders):
        """Test per payment method totals."""
        report = reporter.daily_z_report(orders, 1, date(2026, 3, 1))

        assert report['by_payment_method'] == [
            {'payment_method': 'card', 'order_count': 1, 'total_amount': '189.00', 'vat_amount': '9.00'},
            {'payment_method': 'cash', 'order_count': 1, 'total_amount': '210.00', 'vat_amount': '10.00'},
        ]

    def test_breakdown_by_order_type(self, reporter, orders):
        """Test per order type totals."""
        report = reporter.daily_z_report(orders, 1, date(2026, 3, 1))

        assert report['by_order_type'] == [
            {'type': 'dine', 'order_count': 1, 'total_amount': '210.00'},
            {'type': 'parcel', 'order_count': 1, 'total_amount': '189.00'},
        ]

    def test_empty_day(self, reporter, orders):
        """Test a day without orders."""
        report = reporter.daily_z_report(orders, 1, date(2026, 2, 28))

        assert report['summary']['order_count'] == 0
        assert report['summary']['total_sales'] == '0.00'
        assert report['by_payment_method'] == []
        assert report['by_order_type'] == []

    def test_stored_values_are_not_recomputed(self, reporter):
        """Test that the report sums what was stored."""
        order = make_order(datetime(2026, 3, 1, 10, 0))
        order.vat_amount = Decimal('9.99')

        report = reporter.daily_z_report([order], 1, date(2026, 3, 1))

        assert report['summary']['total_vat_collected'] == '9.99'


class TestMonthlyVatReport:
    """Tests for the monthly VAT report."""

    @pytest.fixture
    def reporter(self):
        """Create a VatReporter instance."""
        return VatReporter()

    @pytest.fixture
    def orders(self):
        """Orders across a month with a rate change."""
        return [
            make_order(datetime(2026, 3, 1, 10, 0)),
            make_order(datetime(2026, 3, 1, 11, 0), discount=50),
            make_order(datetime(2026, 3, 15, 19, 0), vat_rate='7.50'),
            make_order(datetime(2026, 3, 31, 23, 59)),
            make_order(datetime(2026, 3, 20, 12, 0), status='cancelled'),
            make_order(datetime(2026, 4, 1, 0, 0)),
            make_order(datetime(2026, 3, 10, 12, 0), tenant_id=9),
        ]

    def test_summary(self, reporter, orders):
        """Test the period summary."""
        report = reporter.monthly_vat_report(orders, 1, date(2026, 3, 1), date(2026, 3, 31))

        assert report['period'] == {'from': '2026-03-01', 'to': '2026-03-31'}
        assert report['tenant_id'] == 1
        # net: 200 + 150 + 200 + 200, vat: 10 + 7.50 + 15 + 10
        assert report['summary'] == {
            'total_invoices': 4,
            'total_subtotal': '800.00',
            'total_discount': '50.00',
            'total_taxable_sales': '750.00',
            'total_vat_collected': '42.50',
            'total_sales': '792.50',
        }

    def test_daily_breakdown_sorted(self, reporter, orders):
        """Test one row per day in ascending order."""
        report = reporter.monthly_vat_report(orders, 1, date(2026, 3, 1), date(2026, 3, 31))

        assert [row['date'] for row in report['daily_breakdown']] == [
            '2026-03-01', '2026-03-15', '2026-03-31',
        ]
        first_day = report['daily_breakdown'][0]
        assert first_day == {
            'date': '2026-03-01',
            'invoice_count': 2,
            'taxable_sales': '350.00',
            'vat_collected': '17.50',
            'total_sales': '367.50',
            'discounts': '50.00',
        }

    def test_breakdown_by_vat_rate(self, reporter, orders):
        """Test one row per rate applied during the period."""
        report = reporter.monthly_vat_report(orders, 1, date(2026, 3, 1), date(2026, 3, 31))

        assert report['by_vat_rate'] == [
            {'vat_rate': '5.00', 'invoice_count': 3, 'taxable_sales': '550.00', 'vat_collected': '27.50'},
            {'vat_rate': '7.50', 'invoice_count': 1, 'taxable_sales': '200.00', 'vat_collected': '15.00'},
        ]

    def test_single_day_period(self, reporter, orders):
        """Test that both range ends are inclusive."""
        report = reporter.monthly_vat_report(orders, 1, date(2026, 3, 31), date(2026, 3, 31))

        assert report['summary']['total_invoices'] == 1

    def test_inverted_period_rejected(self, reporter, orders):
        """Test that the start date cannot follow the end date."""
        with pytest.raises(ValueError, match="must not be after"):
            reporter.monthly_vat_report(orders, 1, date(2026, 4, 1), date(2026, 3, 1))
