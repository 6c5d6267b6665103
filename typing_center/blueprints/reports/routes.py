"""
Report Routes

- GET /api/reports/dashboard: headline figures for the current month
- GET /api/reports/yearly?year=YYYY: monthly breakdown, client summary and
  payment method distribution

The numbers are computed in typing_center.reports from the stored rows;
nothing here is cached.
"""

from flask import Blueprint, jsonify
from flask_login import login_required

from ...models import Application, Invoice, Payment
from ...reports import dashboard_summary, yearly_report
from ...utils import parse_year


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.route("/dashboard", methods=["GET"])
@login_required
def dashboard():
    invoices = Invoice.query.order_by(Invoice.created_at.desc(), Invoice.id.desc()).all()
    payments = Payment.query.all()
    applications = Application.query.order_by(Application.created_at.desc(), Application.id.desc()).all()
    return jsonify(dashboard_summary(invoices, payments, applications))


@reports_bp.route("/yearly", methods=["GET"])
@login_required
def yearly():
    year = parse_year()
    invoices = Invoice.query.order_by(Invoice.date.asc(), Invoice.id.asc()).all()
    payments = Payment.query.all()
    return jsonify(yearly_report(invoices, payments, year))
