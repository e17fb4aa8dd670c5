from flask import Blueprint, jsonify, request

from ..services import reporting_service, sales_service, products_service, customers_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _fetch_all():
    sales = [s.to_dict(include_items=True) for s in sales_service.list_sales()]
    products = [p.to_dict() for p in products_service.list_products()]
    customers = [c.to_dict() for c in customers_service.list_customers()]
    return sales, products, customers


@reports_bp.get("/dashboard")
def dashboard_report():
    sales, products, customers = _fetch_all()
    return jsonify(reporting_service.dashboard(sales=sales, products=products, customers=customers)), 200


@reports_bp.get("/sales")
def sales_report():
    date_range = request.args.get("date_range", "month")
    sales, products, customers = _fetch_all()

    try:
        filtered = reporting_service.filter_sales(sales, date_range=date_range)
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc), "kind": "validation"}), 400

    return jsonify({
        "date_range": date_range,
        "summary": reporting_service.summarize_sales(filtered),
        "daily_trend": reporting_service.daily_sales_trend(filtered),
        "hourly": reporting_service.hourly_sales(filtered),
        "categories": reporting_service.category_performance(filtered, products),
        "top_products": reporting_service.top_products(filtered),
        "customers": reporting_service.customer_revenue(filtered),
        "customer_analytics": reporting_service.customer_summary(customers),
    }), 200


@reports_bp.get("/inventory")
def inventory_report():
    products = [p.to_dict() for p in products_service.list_products()]
    for p in products:
        p["stock_status"] = reporting_service.stock_status(p["stock"])
    return jsonify({
        "low_stock_threshold": reporting_service.LOW_STOCK_THRESHOLD,
        "summary": reporting_service.inventory_summary(products),
        "items": products,
    }), 200
