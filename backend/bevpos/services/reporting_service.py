# Overview: In-memory aggregation over fetched collections (dashboard, inventory, reports).

"""
Reporting Service

Every function here takes full collections that were already fetched and
serialized (the to_dict() shapes) and derives filters, totals and rollups
with a linear scan. Nothing here queries the database, so the same
functions back the API, the CLI and the tests.

Money stays in integer cents throughout.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from bevpos.time_utils import parse_iso_datetime, range_start, start_of_day, utcnow


# Fixed policy shared by dashboard, inventory and reports.
LOW_STOCK_THRESHOLD = 20

STOCK_OUT = "OUT_OF_STOCK"
STOCK_LOW = "LOW_STOCK"
STOCK_OK = "IN_STOCK"

STOCK_STATUSES = (STOCK_OUT, STOCK_LOW, STOCK_OK)

DASHBOARD_TOP_DEBTORS = 3


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def stock_status(stock: int) -> str:
    if stock <= 0:
        return STOCK_OUT
    if stock <= LOW_STOCK_THRESHOLD:
        return STOCK_LOW
    return STOCK_OK


def _contains(haystack, needle: str) -> bool:
    if haystack is None:
        return False
    return needle in str(haystack).lower()


def _when(record: dict, key: str) -> datetime | None:
    value = record.get(key)
    if isinstance(value, datetime):
        return value
    return parse_iso_datetime(value) if value else None


# =============================================================================
# PRODUCTS
# =============================================================================

def filter_products(
    products: Iterable[dict],
    *,
    search: str | None = None,
    category: str | None = None,
    status: str | None = None,
) -> list[dict]:
    if status is not None and status not in STOCK_STATUSES:
        raise ReportError(f"status must be one of: {', '.join(STOCK_STATUSES)}")

    needle = search.strip().lower() if search else ""
    result = []
    for p in products:
        if needle and not _contains(p.get("name"), needle):
            continue
        if category and p.get("category") != category:
            continue
        if status and stock_status(p.get("stock", 0)) != status:
            continue
        result.append(p)
    return result


def inventory_summary(products: Iterable[dict]) -> dict:
    total_products = 0
    low_stock = 0
    out_of_stock = 0
    total_stock = 0
    for p in products:
        total_products += 1
        total_stock += p.get("stock", 0)
        status = stock_status(p.get("stock", 0))
        if status == STOCK_LOW:
            low_stock += 1
        elif status == STOCK_OUT:
            out_of_stock += 1
    return {
        "total_products": total_products,
        "low_stock": low_stock,
        "out_of_stock": out_of_stock,
        "total_stock": total_stock,
    }


# =============================================================================
# CUSTOMERS
# =============================================================================

def filter_customers(customers: Iterable[dict], *, search: str | None = None) -> list[dict]:
    """Case-insensitive substring match on name or phone."""
    needle = search.strip().lower() if search else ""
    if not needle:
        return list(customers)
    return [
        c for c in customers
        if _contains(c.get("name"), needle) or _contains(c.get("phone"), needle)
    ]


def customer_summary(customers: Iterable[dict]) -> dict:
    total = 0
    with_credit = 0
    total_credit = 0
    for c in customers:
        total += 1
        balance = c.get("credit_balance_cents", 0)
        if balance > 0:
            with_credit += 1
        total_credit += balance
    return {
        "total_customers": total,
        "customers_with_credit": with_credit,
        "total_credit_cents": total_credit,
    }


def top_debtors(customers: Iterable[dict], limit: int = 5) -> list[dict]:
    owing = [c for c in customers if c.get("credit_balance_cents", 0) > 0]
    owing.sort(key=lambda c: c["credit_balance_cents"], reverse=True)
    return owing[:limit]


# =============================================================================
# SALES
# =============================================================================

def filter_sales(
    sales: Iterable[dict],
    *,
    search: str | None = None,
    payment_type: str | None = None,
    date_range: str = "all",
    now: datetime | None = None,
) -> list[dict]:
    """
    Search matches customer name, sale id or transaction id. date_range is
    one of the time_utils presets and is measured from midnight today.
    """
    try:
        since = range_start(date_range, now)
    except ValueError as exc:
        raise ReportError(str(exc)) from exc

    needle = search.strip().lower() if search else ""
    result = []
    for s in sales:
        if needle and not (
            _contains(s.get("customer_name"), needle)
            or _contains(s.get("id"), needle)
            or _contains(s.get("transaction_id"), needle)
        ):
            continue
        if payment_type and s.get("payment_type") != payment_type:
            continue
        if since is not None:
            when = _when(s, "transaction_date")
            if when is None or when < since:
                continue
        result.append(s)
    return result


def summarize_sales(sales: Iterable[dict]) -> dict:
    total = 0
    count = 0
    cash = 0
    credit = 0
    cash_count = 0
    credit_count = 0
    for s in sales:
        amount = s.get("total_amount_cents", 0)
        total += amount
        count += 1
        if s.get("payment_type") == "CASH":
            cash += amount
            cash_count += 1
        elif s.get("payment_type") == "CREDIT":
            credit += amount
            credit_count += 1
    return {
        "total_sales_cents": total,
        "total_transactions": count,
        "cash_sales_cents": cash,
        "credit_sales_cents": credit,
        "cash_transactions": cash_count,
        "credit_transactions": credit_count,
        "avg_transaction_cents": round(total / count) if count else 0,
    }


def daily_sales_trend(sales: Iterable[dict], days: int = 14) -> list[dict]:
    """Per-day cash/credit/total, oldest first, keeping the last `days` days that had sales."""
    by_day: dict[str, dict] = {}
    for s in sales:
        when = _when(s, "transaction_date")
        if when is None:
            continue
        key = when.date().isoformat()
        row = by_day.setdefault(key, {"date": key, "cash_cents": 0, "credit_cents": 0, "total_cents": 0})
        amount = s.get("total_amount_cents", 0)
        if s.get("payment_type") == "CASH":
            row["cash_cents"] += amount
        else:
            row["credit_cents"] += amount
        row["total_cents"] += amount
    rows = [by_day[k] for k in sorted(by_day)]
    return rows[-days:] if days else rows


def hourly_sales(sales: Iterable[dict]) -> list[dict]:
    """Sales by hour of day; hours without sales are omitted."""
    hours = [{"hour": h, "sales_cents": 0, "transactions": 0} for h in range(24)]
    for s in sales:
        when = _when(s, "transaction_date")
        if when is None:
            continue
        hours[when.hour]["sales_cents"] += s.get("total_amount_cents", 0)
        hours[when.hour]["transactions"] += 1
    return [h for h in hours if h["sales_cents"] > 0]


def category_performance(sales: Iterable[dict], products: Iterable[dict]) -> list[dict]:
    """Revenue and units per product category. Items of deleted products are skipped."""
    category_of = {p["id"]: p.get("category") for p in products}
    by_category: dict[str, dict] = {}
    for s in sales:
        for item in s.get("items") or []:
            category = category_of.get(item.get("product_id"))
            if category is None:
                continue
            row = by_category.setdefault(category, {"category": category, "revenue_cents": 0, "quantity": 0})
            row["revenue_cents"] += item.get("total_price_cents", 0)
            row["quantity"] += item.get("quantity", 0)
    return list(by_category.values())


def top_products(sales: Iterable[dict], limit: int = 10) -> list[dict]:
    """Best sellers by revenue, named by the snapshot on the first item seen."""
    by_product: dict[int, dict] = {}
    for s in sales:
        for item in s.get("items") or []:
            pid = item.get("product_id")
            row = by_product.setdefault(pid, {
                "product_id": pid,
                "name": item.get("product_name"),
                "quantity": 0,
                "revenue_cents": 0,
            })
            row["quantity"] += item.get("quantity", 0)
            row["revenue_cents"] += item.get("total_price_cents", 0)
    rows = sorted(by_product.values(), key=lambda r: r["revenue_cents"], reverse=True)
    return rows[:limit]


def customer_revenue(sales: Iterable[dict]) -> list[dict]:
    """Per-customer totals, highest revenue first."""
    by_customer: dict[int, dict] = {}
    for s in sales:
        cid = s.get("customer_id")
        row = by_customer.setdefault(cid, {
            "customer_id": cid,
            "customer_name": s.get("customer_name"),
            "transactions": 0,
            "total_cents": 0,
            "cash_cents": 0,
            "credit_cents": 0,
        })
        amount = s.get("total_amount_cents", 0)
        row["transactions"] += 1
        row["total_cents"] += amount
        if s.get("payment_type") == "CREDIT":
            row["credit_cents"] += amount
        else:
            row["cash_cents"] += amount
    return sorted(by_customer.values(), key=lambda r: r["total_cents"], reverse=True)


# =============================================================================
# PAYMENTS / DASHBOARD
# =============================================================================

def payments_summary(payments: Iterable[dict], customers: Iterable[dict], now: datetime | None = None) -> dict:
    today = start_of_day(now or utcnow())
    tomorrow = today + timedelta(days=1)

    today_total = 0
    today_count = 0
    for p in payments:
        when = _when(p, "payment_date")
        if when is not None and today <= when < tomorrow:
            today_total += p.get("amount_cents", 0)
            today_count += 1

    outstanding = sum(c.get("credit_balance_cents", 0) for c in customers if c.get("credit_balance_cents", 0) > 0)
    return {
        "total_outstanding_cents": outstanding,
        "today_payments_cents": today_total,
        "today_payments_count": today_count,
    }


def last_days_series(sales: Iterable[dict], *, days: int = 7, now: datetime | None = None) -> dict:
    """Daily totals and counts for the last `days` days, today last."""
    today = start_of_day(now or utcnow())
    first = today - timedelta(days=days - 1)
    totals = [0] * days
    counts = [0] * days
    for s in sales:
        when = _when(s, "transaction_date")
        if when is None or when < first or when >= today + timedelta(days=1):
            continue
        index = (start_of_day(when) - first).days
        totals[index] += s.get("total_amount_cents", 0)
        counts[index] += 1
    return {
        "dates": [(first + timedelta(days=i)).date().isoformat() for i in range(days)],
        "totals_cents": totals,
        "counts": counts,
    }


def percent_change(series: list[int]) -> float:
    """Average of the last three points against the first three, in percent."""
    if len(series) < 4:
        return 0.0
    first = sum(series[:3]) / 3
    last = sum(series[-3:]) / 3
    if first == 0:
        return 0.0
    return round((last - first) / first * 100.0, 2)


def dashboard(
    *,
    sales: list[dict],
    products: list[dict],
    customers: list[dict],
    now: datetime | None = None,
) -> dict:
    now = now or utcnow()
    today_sales = filter_sales(sales, date_range="today", now=now)
    today = summarize_sales(today_sales)
    series = last_days_series(sales, days=7, now=now)

    low_stock = sorted(
        (p for p in products if stock_status(p.get("stock", 0)) == STOCK_LOW),
        key=lambda p: p["stock"],
    )

    return {
        "today": {
            "total_cents": today["total_sales_cents"],
            "cash_cents": today["cash_sales_cents"],
            "credit_cents": today["credit_sales_cents"],
            "transactions": today["total_transactions"],
        },
        "outstanding_credit_cents": customer_summary(customers)["total_credit_cents"],
        "low_stock": low_stock,
        "top_debtors": top_debtors(customers, limit=DASHBOARD_TOP_DEBTORS),
        "recent_sales": today_sales[:50],
        "last_7_days": series,
        "sales_change_pct": percent_change(series["totals_cents"]),
        "transactions_change_pct": percent_change(series["counts"]),
    }
