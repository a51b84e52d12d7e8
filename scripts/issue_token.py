from __future__ import annotations

import argparse
from datetime import timedelta

from packages.shared.schemas.order_v1 import RoleV1
from services.api.app.services.identity import issue_token


def main() -> int:
    parser = argparse.ArgumentParser(description="Issue a bearer token for local API calls")
    parser.add_argument("--uid", required=True)
    parser.add_argument("--role", choices=[r.value for r in RoleV1], default=RoleV1.CUSTOMER.value)
    parser.add_argument(
        "--hours", type=int, default=12, help="Token lifetime in hours (default: 12)"
    )
    args = parser.parse_args()

    print(issue_token(args.uid, args.role, expires_in=timedelta(hours=args.hours)))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
