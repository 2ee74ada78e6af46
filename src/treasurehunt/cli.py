"""
TreasureHunt CLI entrypoint.

This CLI is intended for quick local demos and debugging without a game client:
measure distances, sample targets, sign and verify launch payloads, or serve the API.
"""

from __future__ import annotations

import argparse
import json
import random
import sys
import time
from typing import Any

from treasurehunt.config.settings import Settings, get_settings
from treasurehunt.core.errors import TreasureHuntError
from treasurehunt.core.geo import GeoPoint, haversine_m, sample_point_in_disc
from treasurehunt.core.logging import configure_logging
from treasurehunt.core.time import parse_date
from treasurehunt.game.hunt import scheduled_radius_m
from treasurehunt.launch.verifier import sign_launch_data, verify


def _secret(args: argparse.Namespace, settings: Settings) -> str | None:
    if args.secret:
        return str(args.secret)
    secret = settings.launch.secret
    return secret.get_secret_value() if secret is not None else None


def _cmd_distance(args: argparse.Namespace) -> int:
    a = GeoPoint(lat=float(args.from_lat), lon=float(args.from_lng))
    b = GeoPoint(lat=float(args.to_lat), lon=float(args.to_lng))
    distance = haversine_m(a, b)
    if args.json:
        print(json.dumps({"distance_m": distance}))
    else:
        print(f"{distance:.1f} m")
    return 0


def _cmd_sample(args: argparse.Namespace) -> int:
    settings = get_settings()
    if args.radius_m is not None:
        radius = float(args.radius_m)
    elif args.day is not None:
        radius = scheduled_radius_m(settings.hunt, parse_date(args.day))
    else:
        radius = settings.hunt.default_radius_m

    center = GeoPoint(lat=float(args.lat), lon=float(args.lng))
    rng = random.Random(args.seed) if args.seed is not None else None
    points = [sample_point_in_disc(center, radius, rng=rng) for _ in range(int(args.count))]

    if args.json:
        print(json.dumps({"radius_m": radius, "targets": [{"lat": p.lat, "lng": p.lon} for p in points]}))
        return 0
    for p in points:
        print(f"{p.lat:.7f},{p.lon:.7f}  ({haversine_m(center, p):.1f} m from center)")
    return 0


def _cmd_sign(args: argparse.Namespace) -> int:
    settings = get_settings()
    user: dict[str, Any] = {"id": int(args.user_id)}
    if args.username:
        user["username"] = args.username
    if args.first_name:
        user["first_name"] = args.first_name
    if args.last_name:
        user["last_name"] = args.last_name

    fields: dict[str, Any] = {
        "auth_date": int(args.auth_date) if args.auth_date is not None else int(time.time()),
        "user": user,
    }
    if args.query_id:
        fields["query_id"] = args.query_id

    secret = _secret(args, settings)
    if not secret:
        print("error: MISSING_SECRET (set TREASUREHUNT_LAUNCH_SECRET or pass --secret)", file=sys.stderr)
        return 2
    print(sign_launch_data(fields, secret))
    return 0


def _cmd_verify(args: argparse.Namespace) -> int:
    settings = get_settings()
    max_age = args.max_age if args.max_age is not None else settings.launch.max_age_seconds
    try:
        identity = verify(
            args.payload,
            _secret(args, settings),
            asserted_username=args.asserted_username,
            max_age_seconds=max_age,
        )
    except TreasureHuntError as exc:
        print(f"error: {exc.code} ({exc.message})", file=sys.stderr)
        return 1
    print(json.dumps(identity.as_dict(), ensure_ascii=False, indent=2))
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("treasurehunt.api.app:app", host=args.host, port=int(args.port), reload=bool(args.reload))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the TreasureHunt CLI."""
    parser = argparse.ArgumentParser(prog="treasurehunt")
    parser.add_argument("--log-level", type=str, default=None, help="Overrides TREASUREHUNT_LOG_LEVEL.")
    sub = parser.add_subparsers(dest="command", required=True)

    dist = sub.add_parser("distance", help="Great-circle distance between two coordinates (meters).")
    dist.add_argument("--from-lat", required=True, type=float)
    dist.add_argument("--from-lng", required=True, type=float)
    dist.add_argument("--to-lat", required=True, type=float)
    dist.add_argument("--to-lng", required=True, type=float)
    dist.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    dist.set_defaults(func=_cmd_distance)

    smp = sub.add_parser("sample", help="Sample target points uniformly inside a disc.")
    smp.add_argument("--lat", required=True, type=float)
    smp.add_argument("--lng", required=True, type=float)
    smp.add_argument("--radius-m", type=float, default=None, help="Defaults to the configured radius.")
    smp.add_argument("--day", type=str, default=None, help="ISO date; use the daily radius schedule.")
    smp.add_argument("--count", type=int, default=1)
    smp.add_argument("--seed", type=int, default=None, help="Seed for reproducible draws.")
    smp.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    smp.set_defaults(func=_cmd_sample)

    sgn = sub.add_parser("sign", help="Build a signed launch payload (local testing only).")
    sgn.add_argument("--user-id", required=True, type=int)
    sgn.add_argument("--username", type=str, default=None)
    sgn.add_argument("--first-name", type=str, default=None)
    sgn.add_argument("--last-name", type=str, default=None)
    sgn.add_argument("--auth-date", type=int, default=None, help="Unix seconds; defaults to now.")
    sgn.add_argument("--query-id", type=str, default=None)
    sgn.add_argument("--secret", type=str, default=None, help="Overrides the configured launch secret.")
    sgn.set_defaults(func=_cmd_sign)

    ver = sub.add_parser("verify", help="Verify a signed launch payload and print its identity.")
    ver.add_argument("payload", type=str)
    ver.add_argument("--asserted-username", type=str, default=None)
    ver.add_argument("--max-age", type=int, default=None, help="Reject payloads older than N seconds.")
    ver.add_argument("--secret", type=str, default=None, help="Overrides the configured launch secret.")
    ver.set_defaults(func=_cmd_verify)

    srv = sub.add_parser("serve", help="Run the HTTP API with uvicorn.")
    srv.add_argument("--host", type=str, default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)
    srv.add_argument("--reload", action="store_true")
    srv.set_defaults(func=_cmd_serve)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m treasurehunt.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    try:
        return int(func(args))
    except TreasureHuntError as exc:
        print(f"error: {exc.code} ({exc.message})", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
