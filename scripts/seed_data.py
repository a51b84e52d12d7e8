from __future__ import annotations

import argparse

from services.api.app.db.database import db_session
from services.api.app.db.init_db import init_db
from services.api.app.db.models import VendorProfile

DEFAULT_VENDORS = (
    ("vendor-1", "Colmado La Esquina", "+1 809-555-0101"),
    ("vendor-2", "Panaderia Central", "+1 809-555-0102"),
)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed vendor profiles for local Orderline runs")
    parser.add_argument(
        "--vendor",
        action="append",
        nargs=3,
        metavar=("ID", "NAME", "PHONE"),
        help="Vendor to seed (repeatable; defaults to two sample vendors)",
    )
    args = parser.parse_args()

    vendors = [tuple(v) for v in args.vendor] if args.vendor else list(DEFAULT_VENDORS)

    init_db()

    db = db_session()
    try:
        created = 0
        for vendor_id, name, phone in vendors:
            row = db.get(VendorProfile, vendor_id)
            if row is None:
                db.add(VendorProfile(id=vendor_id, name=name, phone=phone))
                created += 1
            else:
                row.name = name
                row.phone = phone

        db.commit()
        print(f"Seeded {created} new vendor(s), {len(vendors) - created} updated")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
