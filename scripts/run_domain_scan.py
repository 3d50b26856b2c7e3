"""
Run one domain scan from CLI.
"""

from __future__ import annotations

import argparse
import json

from app.api.routers.scan import to_scan_result_response
from app.config import get_scanner_settings
from app.scanning.logging_utils import configure_logging
from app.scanning.navigator import PlaywrightNavigator
from app.scanning.normalization import build_query
from app.scanning.pipeline import DomainScanner
from app.scanning.storage.local import LocalFileArtifactStore
from app.services.scan_service import build_artifact_store, get_result_sink


def main() -> int:
    parser = argparse.ArgumentParser(description="Scan one domain on the ads transparency portal.")
    parser.add_argument("domain", help="Domain to look up, e.g. example.com")
    parser.add_argument(
        "--region",
        dest="region",
        default=None,
        help="Region filter (default: SCAN_DEFAULT_REGION or 'anywhere').",
    )
    parser.add_argument(
        "--save-screenshot",
        dest="save_screenshot",
        default=None,
        help="Write the page screenshot to this file or directory instead of Drive.",
    )
    parser.add_argument(
        "--persist",
        action="store_true",
        help="Append the resulting rows to the configured result sink.",
    )
    args = parser.parse_args()

    configure_logging()
    settings = get_scanner_settings()
    try:
        query = build_query(args.domain, args.region or settings.default_region)
    except ValueError as exc:
        parser.error(str(exc))

    artifact_store = (
        LocalFileArtifactStore(args.save_screenshot) if args.save_screenshot else build_artifact_store()
    )
    scanner = DomainScanner(
        navigator=PlaywrightNavigator(settings),
        artifact_store=artifact_store,
        settings=settings,
    )
    result = scanner.scan(query)

    payload = to_scan_result_response(result).model_dump(mode="json")
    if args.persist:
        payload["saved_count"] = get_result_sink().append_rows(result.rows).saved_count
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
