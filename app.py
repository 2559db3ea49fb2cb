import os
import logging
from functools import wraps
from flask import Flask, request, jsonify
from flask_cors import CORS
from dotenv import load_dotenv

from ordertotals.billing import BillingService
from ordertotals.models import InputValidationError, TenantVatSettings
from ordertotals.parser import OrderPayloadParser
from ordertotals.reports import VatReporter

load_dotenv()

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

# Configuration
DEFAULT_VAT_RATE = os.getenv("DEFAULT_VAT_RATE", "0.00")
DEFAULT_VAT_INCLUSIVE = os.getenv("DEFAULT_VAT_INCLUSIVE", "false").lower() == "true"

parser = OrderPayloadParser()
billing_service = BillingService()
reporter = VatReporter()


def default_tenant():
    """Tenant settings used when a request carries none."""
    return TenantVatSettings(
        default_vat_rate=DEFAULT_VAT_RATE,
        vat_inclusive=DEFAULT_VAT_INCLUSIVE
    )


def error_response(message, status):
    return jsonify({
        "is_success": False,
        "error": message
    }), status


def handle_errors(view):
    """Translate calculator and parser errors into JSON responses."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except InputValidationError as e:
            logger.warning(f"Rejected order totals: {str(e)}")
            return error_response(str(e), 422)
        except ValueError as e:
            logger.warning(f"Invalid request to {request.path}: {str(e)}")
            return error_response(str(e), 400)
        except Exception as e:
            logger.exception(f"Unexpected failure in {request.path}")
            return error_response(str(e), 500)
    return wrapper


@app.route('/compute-totals', methods=['POST'])
@handle_errors
def compute_totals():
    """API endpoint to price a cart."""
    data = request.get_json(silent=True)

    if not isinstance(data, dict) or not data:
        return error_response("Missing JSON body", 400)

    order_request = parser.parse_order_request(data)
    tenant = parser.parse_tenant(data['tenant']) if data.get('tenant') else default_tenant()

    priced = billing_service.price_order(order_request, tenant)

    return jsonify({
        "is_success": True,
        "data": priced.to_dict()
    }), 200


@app.route('/reports/daily-z', methods=['POST'])
@handle_errors
def daily_z_report():
    """API endpoint for the daily Z report of a tenant."""
    data = request.get_json(silent=True)

    if not isinstance(data, dict) or data.get('tenant_id') is None:
        return error_response("Missing 'tenant_id' field in request body", 400)

    orders = parser.parse_stored_orders(data.get('orders', []))
    day = parser.parse_date(data.get('date'), 'date')

    report = reporter.daily_z_report(orders, int(data['tenant_id']), day)

    return jsonify({
        "is_success": True,
        "data": report
    }), 200


@app.route('/reports/monthly-vat', methods=['POST'])
@handle_errors
def monthly_vat_report():
    """API endpoint for the VAT report of a tenant over a date range."""
    data = request.get_json(silent=True)

    if not isinstance(data, dict) or data.get('tenant_id') is None:
        return error_response("Missing 'tenant_id' field in request body", 400)

    orders = parser.parse_stored_orders(data.get('orders', []))
    date_from = parser.parse_date(data.get('from'), 'from')
    date_to = parser.parse_date(data.get('to'), 'to')

    report = reporter.monthly_vat_report(orders, int(data['tenant_id']), date_from, date_to)

    return jsonify({
        "is_success": True,
        "data": report
    }), 200


@app.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({"status": "healthy"}), 200


if __name__ == '__main__':
    port = int(os.getenv('PORT', 5001))
    app.run(host='0.0.0.0', port=port, debug=os.getenv('DEBUG', 'False').lower() == 'true')
