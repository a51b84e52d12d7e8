from __future__ import annotations

import argparse
import json
import os
import time
import urllib.error
import urllib.request
from uuid import uuid4

from services.api.app.services.webhook_signature import sign_payload


def _build_event(args: argparse.Namespace) -> dict:
    items = [{"productId": "p-1", "name": "Cafe Santo Domingo", "price": "4.50", "quantity": 2}]
    metadata = {
        "orderId": args.order_code or f"ORD-{uuid4().hex[:6].upper()}",
        "customerId": args.customer_id,
        "vendorId": args.vendor_id,
        "vendorName": args.vendor_name,
        "itemsJson": json.dumps(items),
        "fulfillmentType": args.fulfillment,
        "subtotal": "9.00",
        "deliveryFee": "2.00" if args.fulfillment == "delivery" else "0",
        "serviceFee": "0.50",
        "tax": "1.62",
        "total": "13.12" if args.fulfillment == "delivery" else "11.12",
        "customerName": "Test Customer",
        "customerPhone": "+1 809-555-0199",
        "customerEmail": "test@example.com",
    }
    if args.fulfillment == "delivery":
        metadata.update({"deliveryStreet": "Calle El Conde 101", "deliveryCity": "Santo Domingo"})

    return {
        "id": f"evt_{uuid4().hex}",
        "type": "checkout.session.completed",
        "created": int(time.time()),
        "data": {
            "object": {
                "id": args.session_id or f"cs_test_{uuid4().hex}",
                "object": "checkout.session",
                "payment_status": "paid",
                "payment_intent": f"pi_{uuid4().hex[:24]}",
                "metadata": metadata,
            }
        },
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Send a signed checkout.session.completed event")
    parser.add_argument(
        "--url",
        default=os.getenv("ORDERLINE_API_URL", "http://127.0.0.1:8000") + "/webhooks/payment",
    )
    parser.add_argument("--secret", default=os.getenv("STRIPE_WEBHOOK_SECRET", ""))
    parser.add_argument("--customer-id", default="cust-1")
    parser.add_argument("--vendor-id", default="vendor-1")
    parser.add_argument("--vendor-name", default="Colmado La Esquina")
    parser.add_argument("--fulfillment", choices=("delivery", "pickup"), default="delivery")
    parser.add_argument("--order-code", default=None)
    parser.add_argument("--session-id", default=None, help="Reuse a session id to test replays")
    args = parser.parse_args()

    if not args.secret:
        raise SystemExit("STRIPE_WEBHOOK_SECRET is not set (or pass --secret)")

    body = json.dumps(_build_event(args)).encode("utf-8")
    req = urllib.request.Request(
        args.url,
        data=body,
        method="POST",
        headers={
            "Content-Type": "application/json",
            "Stripe-Signature": sign_payload(body, args.secret),
        },
    )

    try:
        with urllib.request.urlopen(req, timeout=10) as resp:
            print(resp.status, resp.read().decode("utf-8"))
            return 0
    except urllib.error.HTTPError as e:
        print(e.code, e.read().decode("utf-8", errors="replace"))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
