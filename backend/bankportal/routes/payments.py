# Overview: Flask API routes for bank payment operations; parses input and returns JSON responses.

# backend/bankportal/routes/payments.py
"""
Bank Payment API Routes

WHY: Customers raise SWIFT payments; staff verify and release them.

DESIGN:
- Create: customer only, always owned by the caller
- Verify: staff only, pending -> verified
- Submit to SWIFT: staff only, verified -> submitted, in batches
- Listing: staff see the latest 100; customers see their own

SECURITY:
- Every route goes through @require_role
- Bodies are stripped of query-operator keys before use
- 404 covers both "no such payment" and "wrong state"
"""

from flask import Blueprint, request, jsonify, g, current_app
from werkzeug.exceptions import HTTPException

from ..models import ROLE_CUSTOMER, ROLE_STAFF
from ..services import payment_service
from ..services.payment_service import PaymentNotFoundError
from ..validation import ValidationError, parse_payment_ids, sanitize_payload
from ..decorators import require_role


payments_bp = Blueprint("payments", __name__, url_prefix="/api/bankpayments")

LIST_LIMIT = 100


# =============================================================================
# PAYMENT QUERIES
# =============================================================================

@payments_bp.get("")
@require_role(ROLE_STAFF)
def list_payments_route():
    """
    List the most recent payments (max 100).

    Query params:
    - status: pending | verified | submitted (optional)
    """
    try:
        payments = payment_service.list_payments(
            limit=LIST_LIMIT,
            status=request.args.get("status") or None,
        )
        return jsonify([p.to_dict() for p in payments]), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except HTTPException:
        raise
    except Exception:
        current_app.logger.exception("Failed to list payments")
        return jsonify({"error": "DB error"}), 500


@payments_bp.get("/mine")
@require_role(ROLE_CUSTOMER)
def list_my_payments_route():
    """List the calling customer's payments (max 100)."""
    try:
        payments = payment_service.list_customer_payments(g.current_user.id, limit=LIST_LIMIT)
        return jsonify([p.to_dict() for p in payments]), 200

    except HTTPException:
        raise
    except Exception:
        current_app.logger.exception("Failed to list customer payments")
        return jsonify({"error": "DB error"}), 500


# =============================================================================
# PAYMENT CREATION
# =============================================================================

@payments_bp.post("")
@require_role(ROLE_CUSTOMER)
def create_payment_route():
    """
    Raise a new payment as the authenticated customer.

    Request body:
    {
        "amount": "150.00",
        "currency": "USD",
        "payeeAccount": "ABC1234567",
        "swiftCode": "ABCDUS33XXX"
    }

    Returns:
        201: Payment created in pending state
        400: Invalid input
        500: Server error
    """
    try:
        data = sanitize_payload(request.get_json(silent=True))

        payment = payment_service.create_payment(
            customer_id=g.current_user.id,
            amount=data.get("amount"),
            currency=data.get("currency"),
            payee_account=data.get("payeeAccount"),
            swift_code=data.get("swiftCode"),
        )

        return jsonify({
            "message": "Payment created successfully",
            "payment": payment.to_dict(),
        }), 201

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except HTTPException:
        raise
    except Exception:
        current_app.logger.exception("Failed to create payment")
        return jsonify({"error": "Payment creation failed"}), 500


# =============================================================================
# STATE TRANSITIONS
# =============================================================================

@payments_bp.patch("/<int:payment_id>/verify")
@require_role(ROLE_STAFF)
def verify_payment_route(payment_id: int):
    """
    Verify a pending payment.

    Returns:
        200: Payment verified
        404: Payment not found or already processed
        500: Server error
    """
    try:
        payment = payment_service.verify_payment(payment_id, staff_user_id=g.current_user.id)
        current_app.logger.info("Payment %s verified by %s", payment_id, g.current_user.id)
        return jsonify({
            "message": "Payment verified",
            "payment": payment.to_dict(),
        }), 200

    except PaymentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except HTTPException:
        raise
    except Exception:
        current_app.logger.exception("Failed to verify payment %s", payment_id)
        return jsonify({"error": "Verification failed"}), 500


@payments_bp.post("/submit-to-swift")
@require_role(ROLE_STAFF)
def submit_to_swift_route():
    """
    Submit a batch of verified payments to SWIFT.

    Request body:
    {
        "ids": [12, 13, 17]
    }

    Only ids currently in "verified" are transitioned; the rest are skipped.

    Returns:
        200: {"count": n, "message": "..."}
        400: ids missing, empty or malformed
        404: None of the ids was a verified payment
        500: Server error
    """
    try:
        data = sanitize_payload(request.get_json(silent=True))
        ids = parse_payment_ids(data.get("ids"))

        count = payment_service.submit_batch(ids, staff_user_id=g.current_user.id)
        current_app.logger.info("%s payments submitted to SWIFT by %s", count, g.current_user.id)

        return jsonify({
            "count": count,
            "message": f"{count} payments submitted to SWIFT",
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PaymentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except HTTPException:
        raise
    except Exception:
        current_app.logger.exception("Failed to submit payments")
        return jsonify({"error": "Submission failed"}), 500
