from __future__ import annotations

import argparse
from datetime import datetime
import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence

from .config import PROGRESS_STORE_DIR, ROUTE_FILE, STRAVA_ACCESS_TOKEN
from .errors import CoverageAnalysisError, InvalidRouteData, StravaAPIError
from .geometry import LonLat, as_lonlat_array, load_route_file
from .progress_store import JsonFileProgressStore
from .services import CoverageService, summarize
from .strava_client import fetch_activities, fetch_activity_trace
from .utils import format_duration, parse_iso_datetime, swap_axes


def _setup_logging(verbose: bool = False) -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trail-coverage",
        description="Track coverage of a long-distance trail from GPS activities.",
    )
    parser.add_argument("--route", default=ROUTE_FILE, help="GeoJSON route file")
    parser.add_argument(
        "--store-dir", default=PROGRESS_STORE_DIR, help="Progress store directory"
    )
    parser.add_argument("--user", required=True, help="User identifier")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyse one GPS trace file")
    analyze.add_argument("trace", help="JSON file with a list of coordinates")
    analyze.add_argument("--activity-id", default=None)
    analyze.add_argument(
        "--latlng",
        action="store_true",
        help="Trace coordinates are [lat, lon] (Strava stream order)",
    )

    sub.add_parser("recompute", help="Recompute metrics from stored coverage")

    sync = sub.add_parser("sync", help="Fetch and analyse Strava activities")
    sync.add_argument("--access-token", default=STRAVA_ACCESS_TOKEN)
    sync.add_argument("--after", default=None, help="ISO date lower bound")
    sync.add_argument("--reanalyze", action="store_true")

    sub.add_parser("status", help="Show stored progress")
    sub.add_parser("reset", help="Clear all stored progress for the user")
    return parser


def _read_trace(path: str, latlng: bool) -> List[LonLat]:
    with Path(path).open("r", encoding="utf-8") as handle:
        payload: Any = json.load(handle)
    if isinstance(payload, dict):
        # Accept a GeoJSON LineString or a Strava streams payload.
        if "coordinates" in payload:
            payload = payload["coordinates"]
        elif isinstance(payload.get("latlng"), dict):
            payload = payload["latlng"].get("data") or []
            latlng = True
    if latlng:
        return swap_axes(payload)
    return [(float(lon), float(lat)) for lon, lat in as_lonlat_array(payload)]


def _log_progress(activity_id: Any, percent: int) -> None:
    if percent % 25 == 0:
        logging.info("Activity %s: %d%% sampled", activity_id, percent)


def _log_summary(service: CoverageService, user: str) -> None:
    figures = summarize(service.load_ledger(user))
    logging.info(
        "Completed %s km of %s km (%s%%), %s km remaining",
        figures["completed_distance_km"],
        figures["route_length_km"],
        figures["percentage"],
        figures["remaining_distance_km"],
    )
    logging.info(
        "%d/%d analysed activities on the trail; %d m climbed in %s",
        figures["overlapping_activities"],
        figures["analyzed_activities"],
        figures["elevation_gain_m"],
        format_duration(figures["moving_time_s"]),
    )


def _sync(service: CoverageService, args: argparse.Namespace) -> None:
    if not args.access_token:
        raise StravaAPIError("An access token is required (set STRAVA_ACCESS_TOKEN)")
    after: Optional[datetime] = None
    if args.after:
        after = parse_iso_datetime(args.after)
        if after is None:
            raise ValueError(f"Invalid --after date: {args.after}")
    activities = fetch_activities(args.access_token, after=after)
    ledger = service.load_ledger(args.user)
    pending = [
        act for act in activities if args.reanalyze or not ledger.is_analyzed(act.get("id"))
    ]
    logging.info("%d of %d activities need analysis", len(pending), len(activities))
    items = ((act, fetch_activity_trace(args.access_token, act["id"])) for act in pending)
    service.analyze_activities(
        args.user, items, skip_analyzed=not args.reanalyze, progress=_log_progress
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    try:
        route = load_route_file(args.route)
    except InvalidRouteData as exc:
        logging.error("Failed to load route data: %s", exc)
        return 2

    store = JsonFileProgressStore(args.store_dir)
    try:
        with CoverageService(route, store) as service:
            if args.command == "analyze":
                trace = _read_trace(args.trace, args.latlng)
                activity_id = args.activity_id or Path(args.trace).stem
                service.analyze_activity(
                    args.user,
                    activity_id,
                    trace,
                    activity={"id": activity_id, "name": Path(args.trace).name},
                    progress=_log_progress,
                )
            elif args.command == "recompute":
                service.recompute(args.user)
            elif args.command == "sync":
                _sync(service, args)
            elif args.command == "reset":
                service.reset(args.user)
            _log_summary(service, args.user)
    except (CoverageAnalysisError, StravaAPIError, OSError, ValueError) as exc:
        logging.error("%s failed: %s", args.command, exc)
        return 1
    return 0


__all__ = ["main"]
