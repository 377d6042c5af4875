# Overview: Service-layer operations for reporting; read-only aggregation over Sale/SaleItem history.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from flask import current_app
from sqlalchemy import func, select

from ..errors import ValidationError
from ..extensions import db
from ..models import Product, Sale, SaleItem
from ..validation import coerce_int
from pdv.time_utils import day_bounds, parse_iso_date, today_utc


@dataclass
class SummaryFilter:
    """
    Options recognized by summarize().

    Day bounds are inclusive UTC calendar days and default to today.
    """
    date_from: date | None = None
    date_to: date | None = None
    seller_id: str | None = None
    product_id: int | None = None
    min_total_cents: int | None = None
    max_total_cents: int | None = None
    top_n: int | None = None
    include_top_sellers: bool = False

    def resolved(self) -> "SummaryFilter":
        today = today_utc()
        date_from = self.date_from or self.date_to or today
        date_to = self.date_to or self.date_from or today
        if date_from > date_to:
            raise ValidationError("from must be on or before to")
        if (
            self.min_total_cents is not None
            and self.max_total_cents is not None
            and self.min_total_cents > self.max_total_cents
        ):
            raise ValidationError("min_total_cents must be <= max_total_cents")

        top_n = current_app.config["REPORT_TOP_N"] if self.top_n is None else self.top_n
        if top_n < 1:
            raise ValidationError("top must be >= 1")
        top_n = min(top_n, current_app.config["REPORT_TOP_N_MAX"])

        return SummaryFilter(
            date_from=date_from,
            date_to=date_to,
            seller_id=self.seller_id or None,
            product_id=self.product_id,
            min_total_cents=self.min_total_cents,
            max_total_cents=self.max_total_cents,
            top_n=top_n,
            include_top_sellers=self.include_top_sellers,
        )


def parse_summary_filter(args) -> SummaryFilter:
    """Build a SummaryFilter from request query args (a Mapping of strings)."""
    def _date(key):
        try:
            return parse_iso_date(args.get(key))
        except ValueError:
            raise ValidationError(f"{key} must be a date (YYYY-MM-DD)")

    def _int(key):
        raw = args.get(key)
        if raw is None or str(raw).strip() == "":
            return None
        return coerce_int(raw, key)

    include_sellers = str(args.get("include_sellers", "false")).strip().lower() in ("1", "true", "yes")

    return SummaryFilter(
        date_from=_date("from"),
        date_to=_date("to"),
        seller_id=(args.get("seller_id") or "").strip() or None,
        product_id=_int("product_id"),
        min_total_cents=_int("min_total_cents"),
        max_total_cents=_int("max_total_cents"),
        top_n=_int("top"),
        include_top_sellers=include_sellers,
    )


def _matching_sales_query(flt: SummaryFilter):
    """PAID sales inside the window that pass every filter."""
    start, end = day_bounds(flt.date_from, flt.date_to)

    query = select(Sale.id).where(
        Sale.status == "PAID",
        Sale.created_at >= start,
        Sale.created_at < end,
    )
    if flt.seller_id:
        query = query.where(Sale.seller_user_id == flt.seller_id)
    if flt.min_total_cents is not None:
        query = query.where(Sale.total_cents >= flt.min_total_cents)
    if flt.max_total_cents is not None:
        query = query.where(Sale.total_cents <= flt.max_total_cents)
    if flt.product_id is not None:
        containing = select(SaleItem.sale_id).where(SaleItem.product_id == flt.product_id).correlate(None)
        query = query.where(Sale.id.in_(containing))
    # Always used as an uncorrelated IN (...) subquery
    return query.correlate(None)


def _average_cents(total: int, count: int) -> int:
    if count <= 0:
        return 0
    # nearest-cent rounding (half-up)
    return (total + (count // 2)) // count


def summarize(flt: SummaryFilter | None = None) -> dict:
    """
    Time-windowed rollup of PAID sales.

    CANCELED sales never contribute. An empty window yields zeros and empty
    lists, never an error.
    """
    flt = (flt or SummaryFilter()).resolved()

    sale_ids = _matching_sales_query(flt)
    in_window = Sale.id.in_(sale_ids)

    totals = db.session.query(
        func.count(Sale.id).label("count"),
        func.coalesce(func.sum(Sale.total_cents), 0).label("total"),
    ).filter(in_window).one()
    count = int(totals.count or 0)
    total = int(totals.total or 0)

    payment_rows = (
        db.session.query(
            Sale.payment_method.label("method"),
            func.count(Sale.id).label("count"),
            func.coalesce(func.sum(Sale.total_cents), 0).label("total"),
        )
        .filter(in_window)
        .group_by(Sale.payment_method)
        .all()
    )
    payments = sorted(
        (
            {"method": row.method, "count": int(row.count), "total_cents": int(row.total)}
            for row in payment_rows
        ),
        key=lambda p: (-p["total_cents"], p["method"]),
    )

    qty_sum = func.sum(SaleItem.quantity)
    product_rows = (
        db.session.query(
            SaleItem.product_id.label("product_id"),
            Product.name.label("name"),
            qty_sum.label("quantity"),
            func.coalesce(func.sum(SaleItem.total_cents), 0).label("total"),
        )
        .join(Product, Product.id == SaleItem.product_id)
        .filter(SaleItem.sale_id.in_(sale_ids))
        .group_by(SaleItem.product_id, Product.name)
        .order_by(qty_sum.desc(), SaleItem.product_id.asc())
        .limit(flt.top_n)
        .all()
    )
    top_products = [
        {
            "product_id": row.product_id,
            "name": row.name,
            "quantity": int(row.quantity or 0),
            "total_cents": int(row.total or 0),
        }
        for row in product_rows
    ]

    report = {
        "period": {
            "from": flt.date_from.isoformat(),
            "to": flt.date_to.isoformat(),
        },
        "filters": {
            "seller_id": flt.seller_id,
            "product_id": flt.product_id,
            "min_total_cents": flt.min_total_cents,
            "max_total_cents": flt.max_total_cents,
            "top": flt.top_n,
        },
        "sales": {
            "count": count,
            "total_cents": total,
            "average_cents": _average_cents(total, count),
        },
        "payments": payments,
        "top_products": top_products,
    }

    if flt.include_top_sellers:
        seller_total = func.coalesce(func.sum(Sale.total_cents), 0)
        seller_rows = (
            db.session.query(
                Sale.seller_user_id.label("seller_id"),
                func.count(Sale.id).label("count"),
                seller_total.label("total"),
            )
            .filter(in_window)
            .group_by(Sale.seller_user_id)
            .order_by(seller_total.desc(), Sale.seller_user_id.asc())
            .limit(flt.top_n)
            .all()
        )
        report["top_sellers"] = [
            {"seller_id": row.seller_id, "count": int(row.count), "total_cents": int(row.total)}
            for row in seller_rows
        ]

    return report
