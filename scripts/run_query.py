#!/usr/bin/env python3
"""CrisisFusion CLI: run one resolver or aggregator query and print JSON.

Usage:
    python scripts/run_query.py geocode "Manhattan, NYC"
    python scripts/run_query.py distance 40.7128 -74.0060 34.0522 -118.2437
    python scripts/run_query.py extract-location "Flooding reported near Lower East Side"
    python scripts/run_query.py social --disaster-id d1 --keywords flood Manhattan
    python scripts/run_query.py emergency --test-mode
    python scripts/run_query.py --test-mode keyword-analysis --disaster-id d1 shelter water
    python scripts/run_query.py --store json reanalyze d1
    python scripts/run_query.py --store json add-resource d1 "Shelter A" shelter "Brooklyn"
    python scripts/run_query.py --store json nearby d1 40.7128 -74.0060 --radius 15
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

# Ensure project root is on sys.path for consistent import resolution
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from config.defaults import (  # noqa: E402
    DEFAULT_LOG_LEVEL,
    NEARBY_RADIUS_KM,
    RECORD_STORE_BACKEND,
    RECORD_STORE_PATH,
)
from config.settings import ServiceConfig  # noqa: E402
from crisisfusion.errors import ValidationError  # noqa: E402
from crisisfusion.io.persistence import dumps  # noqa: E402
from crisisfusion.service import Services, build_services  # noqa: E402
from crisisfusion.utils.logging_utils import configure_logging  # noqa: E402


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the argparse parser: global flags plus one subcommand per query."""
    parser = argparse.ArgumentParser(
        prog="run_query",
        description="CrisisFusion: disaster-response aggregation queries",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # ── Global flags ────────────────────────────────────────────────────────────
    parser.add_argument(
        "--test-mode",
        action="store_true",
        default=False,
        help="Build no network providers; serve substitute data only",
    )
    parser.add_argument(
        "--llm-backend",
        type=str,
        default=None,
        choices=["anthropic", "ollama"],
        help="LLM backend for text analysis (default: LLM_BACKEND env var)",
    )
    parser.add_argument(
        "--store",
        type=str,
        default=RECORD_STORE_BACKEND,
        choices=["memory", "json"],
        help="Record store backend",
    )
    parser.add_argument(
        "--store-path",
        type=str,
        default=RECORD_STORE_PATH,
        help="Directory for the JSON record store",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=DEFAULT_LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity level",
    )
    parser.add_argument("--indent", type=int, default=2, help="JSON output indentation")

    sub = parser.add_subparsers(dest="command", required=True)

    # ── Geocoding ───────────────────────────────────────────────────────────────
    p = sub.add_parser("geocode", help="Resolve a location name to coordinates")
    p.add_argument("location_name")

    p = sub.add_parser("reverse", help="Resolve coordinates to an address")
    p.add_argument("latitude", type=float)
    p.add_argument("longitude", type=float)

    p = sub.add_parser("distance", help="Great-circle distance between two points (km)")
    for name in ("lat1", "lon1", "lat2", "lon2"):
        p.add_argument(name, type=float)

    # ── Text analysis ───────────────────────────────────────────────────────────
    p = sub.add_parser("extract-location", help="Extract a location name from text")
    p.add_argument("text")

    p = sub.add_parser("analyze", help="Analyze a disaster description")
    p.add_argument("text")

    p = sub.add_parser("verify-image", help="Assess the authenticity of a disaster image")
    p.add_argument("image_url")
    p.add_argument("--context", type=str, default="", help="Claimed context of the image")

    # ── Social signals ──────────────────────────────────────────────────────────
    p = sub.add_parser("social", help="Aggregated social signals for a disaster")
    p.add_argument("--disaster-id", type=str, required=True)
    p.add_argument("--keywords", type=str, nargs="*", default=[], metavar="KEYWORD")

    p = sub.add_parser("alerts", help="Urgent and high-priority social signals")
    p.add_argument("--disaster-id", type=str, required=True)

    p = sub.add_parser("platform-summary", help="Social signal counts per platform and priority")
    p.add_argument("--disaster-id", type=str, required=True)

    p = sub.add_parser("keyword-analysis", help="Mentions of each keyword in social signals")
    p.add_argument("--disaster-id", type=str, required=True)
    p.add_argument("keywords", type=str, nargs="+", metavar="KEYWORD")

    # ── Official updates ────────────────────────────────────────────────────────
    p = sub.add_parser("updates", help="Aggregated official updates for a disaster")
    p.add_argument("--disaster-id", type=str, required=True)
    p.add_argument("--keywords", type=str, nargs="*", default=[], metavar="KEYWORD")
    p.add_argument(
        "--source",
        type=str,
        default=None,
        help="Query one source only (fema, redcross, weather)",
    )
    p.add_argument(
        "--refresh",
        action="store_true",
        default=False,
        help="Drop the cached aggregate before querying",
    )

    p = sub.add_parser("emergency", help="Official updates containing emergency keywords")
    p.add_argument("--keywords", type=str, nargs="*", default=[], metavar="KEYWORD")

    p = sub.add_parser("sources-summary", help="Official update totals and latest item per agency")
    p.add_argument("--disaster-id", type=str, required=True)

    # ── Disasters ───────────────────────────────────────────────────────────────
    p = sub.add_parser("reanalyze", help="Re-run description analysis for a stored disaster")
    p.add_argument("disaster_id")

    # ── Resources ───────────────────────────────────────────────────────────────
    p = sub.add_parser("add-resource", help="Register a resource for a disaster")
    p.add_argument("disaster_id")
    p.add_argument("name")
    p.add_argument("resource_type")
    p.add_argument("location_name")

    p = sub.add_parser("nearby", help="Resources of a disaster near a point")
    p.add_argument("disaster_id")
    p.add_argument("latitude", type=float)
    p.add_argument("longitude", type=float)
    p.add_argument("--radius", type=float, default=NEARBY_RADIUS_KM, help="Search radius (km)")
    p.add_argument("--type", dest="resource_type", type=str, default=None)

    return parser


def args_to_config(args: argparse.Namespace) -> ServiceConfig:
    """Convert parsed CLI arguments to a ServiceConfig instance."""
    config = ServiceConfig(
        record_store_backend=args.store,
        record_store_path=args.store_path,
        log_level=args.log_level,
        test_mode=args.test_mode,
    )
    if args.llm_backend:
        config.llm_backend = args.llm_backend
    return config


def _as_json(value: Any) -> Any:
    if isinstance(value, list):
        return [_as_json(v) for v in value]
    if isinstance(value, dict):
        return {k: _as_json(v) for k, v in value.items()}
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


def run_command(args: argparse.Namespace, services: Services) -> Any:
    """Dispatch one subcommand and return a JSON-serializable result."""
    coordinator = services.coordinator
    command = args.command

    if command == "geocode":
        return services.geocoding.geocode(args.location_name)
    if command == "reverse":
        return services.geocoding.reverse_geocode(args.latitude, args.longitude)
    if command == "distance":
        km = services.geocoding.calculate_distance(args.lat1, args.lon1, args.lat2, args.lon2)
        return {"distance_km": round(km, 2)}
    if command == "extract-location":
        return services.text_analysis.extract_location(args.text)
    if command == "analyze":
        return services.text_analysis.analyze_disaster_description(args.text)
    if command == "verify-image":
        return services.text_analysis.verify_image_authenticity(args.image_url, args.context)
    if command == "social":
        return coordinator.social_reports(args.disaster_id, args.keywords)
    if command == "alerts":
        return coordinator.priority_alerts(args.disaster_id)
    if command == "platform-summary":
        return services.social.platform_summary(args.disaster_id)
    if command == "keyword-analysis":
        return services.social.keyword_analysis(args.disaster_id, args.keywords)
    if command == "updates":
        if args.source:
            return services.official.get_updates_by_source(args.source)
        if args.refresh:
            return coordinator.refresh_official_updates(args.disaster_id, args.keywords)
        return coordinator.official_updates(args.disaster_id, args.keywords)
    if command == "emergency":
        return coordinator.emergency_alerts(args.keywords)
    if command == "sources-summary":
        return services.official.sources_summary(args.disaster_id)
    if command == "reanalyze":
        return coordinator.reanalyze_disaster(args.disaster_id)
    if command == "add-resource":
        return coordinator.create_resource(
            args.disaster_id, args.name, args.resource_type, args.location_name
        )
    if command == "nearby":
        return coordinator.find_nearby_resources(
            args.disaster_id,
            args.latitude,
            args.longitude,
            radius_km=args.radius,
            resource_type=args.resource_type,
        )
    raise ValueError(f"Unknown command: {command}")


def main() -> None:
    """CLI entrypoint: parse arguments, wire services, run one query."""
    parser = build_arg_parser()
    args = parser.parse_args()

    configure_logging(log_level=args.log_level)
    logger = logging.getLogger("run_query")

    config = args_to_config(args)
    logger.info("CrisisFusion query %r (test_mode=%s)", args.command, config.test_mode)

    services = build_services(config)
    try:
        result = run_command(args, services)
        print(dumps(_as_json(result), indent=args.indent))
    except ValidationError as exc:
        logger.error("Invalid input: %s", exc)
        sys.exit(2)
    except KeyboardInterrupt:
        logger.info("Query interrupted by user")
        sys.exit(0)
    except Exception as exc:
        logger.exception("Query failed with unhandled exception: %s", exc)
        sys.exit(1)
    finally:
        services.close()


if __name__ == "__main__":
    main()
