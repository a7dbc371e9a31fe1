"""
Purge forecast cache entries from CLI.
"""

from __future__ import annotations

import argparse
import json
from datetime import datetime, timezone

from app.services.forecast_service import get_forecast_service
from db.session import session_scope


def main() -> int:
    parser = argparse.ArgumentParser(description="Delete expired (or all) forecast cache entries.")
    parser.add_argument(
        "--all",
        dest="clear_all",
        action="store_true",
        help="Delete every cached forecast, not only expired ones.",
    )
    args = parser.parse_args()

    service = get_forecast_service()
    with session_scope() as db:
        if args.clear_all:
            removed = service.clear_cache(db=db)
        else:
            removed = service.purge_expired(db=db, now=datetime.now(tz=timezone.utc))

    print(json.dumps({"removed": removed, "scope": "all" if args.clear_all else "expired"}))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
