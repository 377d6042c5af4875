"""
Reporting tests.

Verifies aggregates over PAID sales, CANCELED exclusion, filters, ordering
and empty windows.
"""

from datetime import timedelta

import pytest

from pdv.errors import ValidationError
from pdv.extensions import db
from pdv.services import sales_service
from pdv.services.reporting_service import SummaryFilter, parse_summary_filter, summarize
from pdv.time_utils import today_utc, utcnow

from conftest import ADMIN, CASHIER, OTHER_CASHIER


def _backdate(sale, days):
    sale.created_at = utcnow() - timedelta(days=days)
    db.session.commit()


class TestSummarize:

    def test_empty_window(self, app):
        report = summarize()

        assert report["sales"] == {"count": 0, "total_cents": 0, "average_cents": 0}
        assert report["payments"] == []
        assert report["top_products"] == []
        assert "top_sellers" not in report
        assert report["period"] == {"from": today_utc().isoformat(), "to": today_utc().isoformat()}

    def test_totals_and_breakdown(self, shirt, mug):
        sales_service.create_sale(CASHIER, "PIX", [(shirt.id, 2)])           # 10000
        sales_service.create_sale(CASHIER, "CASH", [(mug.id, 1)])            # 3500
        sales_service.create_sale(OTHER_CASHIER, "PIX", [(mug.id, 3), (shirt.id, 1)])  # 15500

        report = summarize()

        assert report["sales"]["count"] == 3
        assert report["sales"]["total_cents"] == 29000
        assert report["sales"]["average_cents"] == 9667
        assert report["payments"] == [
            {"method": "PIX", "count": 2, "total_cents": 25500},
            {"method": "CASH", "count": 1, "total_cents": 3500},
        ]
        assert report["top_products"] == [
            {"product_id": mug.id, "name": mug.name, "quantity": 4, "total_cents": 14000},
            {"product_id": shirt.id, "name": shirt.name, "quantity": 3, "total_cents": 15000},
        ]

    def test_canceled_sales_never_count(self, make_product):
        product = make_product(price_cents=1000, stock=10)
        sale = sales_service.create_sale(CASHIER, "PIX", [(product.id, 2)])
        assert sale.total_cents == 2000

        sales_service.cancel_sale(sale.id, CASHIER)
        report = summarize(SummaryFilter(include_top_sellers=True))

        assert report["sales"]["count"] == 0
        assert report["payments"] == []
        assert report["top_products"] == []
        assert report["top_sellers"] == []

    def test_window_is_inclusive_day_range(self, shirt):
        old = sales_service.create_sale(CASHIER, "PIX", [(shirt.id, 1)])
        _backdate(old, 3)
        sales_service.create_sale(CASHIER, "PIX", [(shirt.id, 2)])

        today = today_utc()
        assert summarize()["sales"]["count"] == 1

        wide = summarize(SummaryFilter(date_from=today - timedelta(days=3), date_to=today))
        assert wide["sales"]["count"] == 2

        only_old = summarize(SummaryFilter(date_from=today - timedelta(days=3), date_to=today - timedelta(days=3)))
        assert only_old["sales"]["total_cents"] == 5000

    def test_seller_filter_and_top_sellers(self, shirt):
        sales_service.create_sale(CASHIER, "PIX", [(shirt.id, 1)])
        sales_service.create_sale(OTHER_CASHIER, "PIX", [(shirt.id, 3)])
        sales_service.create_sale(ADMIN, "CARD", [(shirt.id, 1)])

        report = summarize(SummaryFilter(seller_id=OTHER_CASHIER.user_id))
        assert report["sales"]["count"] == 1
        assert report["sales"]["total_cents"] == 15000

        everyone = summarize(SummaryFilter(include_top_sellers=True, top_n=2))
        assert everyone["top_sellers"] == [
            {"seller_id": OTHER_CASHIER.user_id, "count": 1, "total_cents": 15000},
            {"seller_id": ADMIN.user_id, "count": 1, "total_cents": 5000},
        ]

    def test_product_filter_keeps_whole_sales(self, shirt, mug):
        sales_service.create_sale(CASHIER, "PIX", [(shirt.id, 1), (mug.id, 1)])
        sales_service.create_sale(CASHIER, "PIX", [(shirt.id, 1)])

        report = summarize(SummaryFilter(product_id=mug.id))
        assert report["sales"]["count"] == 1
        assert report["sales"]["total_cents"] == 8500
        assert {p["product_id"] for p in report["top_products"]} == {shirt.id, mug.id}

    def test_total_bounds_are_inclusive(self, shirt, mug):
        sales_service.create_sale(CASHIER, "PIX", [(mug.id, 1)])    # 3500
        sales_service.create_sale(CASHIER, "PIX", [(shirt.id, 1)])  # 5000
        sales_service.create_sale(CASHIER, "PIX", [(shirt.id, 2)])  # 10000

        report = summarize(SummaryFilter(min_total_cents=3500, max_total_cents=5000))
        assert report["sales"]["count"] == 2
        assert report["sales"]["total_cents"] == 8500

    def test_top_n_limits_products(self, make_product):
        products = [make_product(stock=10) for _ in range(3)]
        for qty, product in enumerate(products, start=1):
            sales_service.create_sale(CASHIER, "PIX", [(product.id, qty)])

        report = summarize(SummaryFilter(top_n=2))
        assert [p["product_id"] for p in report["top_products"]] == [products[2].id, products[1].id]

    def test_average_rounds_half_up(self, make_product):
        product = make_product(price_cents=1, stock=10)
        sales_service.create_sale(CASHIER, "PIX", [(product.id, 1)])
        sales_service.create_sale(CASHIER, "PIX", [(product.id, 2)])

        assert summarize()["sales"]["average_cents"] == 2


class TestSummaryFilter:

    def test_from_after_to_rejected(self, app):
        today = today_utc()
        with pytest.raises(ValidationError):
            summarize(SummaryFilter(date_from=today, date_to=today - timedelta(days=1)))

    def test_min_above_max_rejected(self, app):
        with pytest.raises(ValidationError):
            summarize(SummaryFilter(min_total_cents=10, max_total_cents=5))

    def test_top_must_be_positive(self, app):
        with pytest.raises(ValidationError):
            summarize(SummaryFilter(top_n=0))

    def test_top_is_clamped(self, app):
        report = summarize(SummaryFilter(top_n=10_000))
        assert report["filters"]["top"] == app.config["REPORT_TOP_N_MAX"]

    def test_single_bound_defaults_other_side(self, app):
        resolved = SummaryFilter(date_from=today_utc() - timedelta(days=2)).resolved()
        assert resolved.date_to == resolved.date_from

    def test_parse_query_args(self, app):
        flt = parse_summary_filter({
            "from": "2026-01-01",
            "to": "2026-01-31",
            "seller_id": " caixa-1 ",
            "product_id": "7",
            "min_total_cents": "100",
            "top": "5",
            "include_sellers": "true",
        })
        assert flt.date_from.isoformat() == "2026-01-01"
        assert flt.date_to.isoformat() == "2026-01-31"
        assert flt.seller_id == "caixa-1"
        assert flt.product_id == 7
        assert flt.min_total_cents == 100
        assert flt.max_total_cents is None
        assert flt.top_n == 5
        assert flt.include_top_sellers is True

    @pytest.mark.parametrize("args", [{"from": "01/02/2026"}, {"top": "abc"}, {"product_id": "1.5"}])
    def test_parse_rejects_malformed(self, app, args):
        with pytest.raises(ValidationError):
            parse_summary_filter(args)
