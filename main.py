"""Entry point for the qibla direction engine.

Prints the qibla bearing for a position:
    python main.py --lat 52.52 --lon 13.405

Replays recorded orientation events (one JSON object per line, as delivered
by the host, e.g. {"alpha": 12.0, "beta": 3.1, "gamma": -1.4}) and prints one
render payload per frame:
    python main.py --lat 52.52 --lon 13.405 --samples events.jsonl
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

# Make all sibling modules importable by their bare name
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import DeclinationConfig, EngineConfig, SessionConfig
from declination import DeclinationProvider
from engine import DirectionEngine
from errors import CompassError
from log_config import setup_logging
from models import GeoPoint
from render_payload import build_payload
from session import CompassSession

logger = logging.getLogger("main")


def read_events(path: Path) -> list:
    """Load JSON-lines orientation events; unparsable lines are skipped."""
    events = []
    with open(path, encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError as exc:
                logger.warning("%s:%d: skipped (%s)", path, lineno, exc)
    return events


async def replay(session: CompassSession, point: GeoPoint, events: list, out=None) -> int:
    """Start *session* at *point* and feed *events* one per frame.

    Raises:
        OrientationUnsupported: if none of the events yields a heading.
    """
    out = out or sys.stdout

    async def position_source():
        return point

    await session.start(position_source)
    frame_s = session.config.frame_ms / 1000.0

    async def feed():
        for event in events:
            session.on_orientation(event)
            await asyncio.sleep(frame_s)
        await asyncio.sleep(2 * frame_s)
        session.end_input()
        if session.engine.is_tracking:
            session.close()

    def sink(result):
        print(json.dumps(build_payload(result)), file=out)

    feeder = asyncio.ensure_future(feed())
    try:
        frames = await session.run(sink)
    finally:
        feeder.cancel()
    return frames


def build_parser() -> argparse.ArgumentParser:
    default_session = SessionConfig()
    default_decl = DeclinationConfig()

    parser = argparse.ArgumentParser(description="Qibla direction engine")
    parser.add_argument("--lat", type=float, required=True, help="Latitude (decimal degrees)")
    parser.add_argument("--lon", type=float, required=True, help="Longitude (decimal degrees)")
    parser.add_argument("--alt", type=float, default=0.0, help="Altitude in metres (default: 0)")
    parser.add_argument(
        "--method",
        choices=["vincenty", "spherical"],
        default="vincenty",
        help="Bearing solver (default: vincenty)",
    )
    parser.add_argument("--samples", type=Path, default=None, help="JSON-lines orientation events to replay")
    parser.add_argument(
        "--frame-ms",
        type=int,
        default=default_session.frame_ms,
        help=f"Minimum frame interval (default: {default_session.frame_ms})",
    )
    parser.add_argument(
        "--declination-key",
        default=os.environ.get("NOAA_GEOMAG_KEY"),
        help="NOAA geomag-web API key (default: $NOAA_GEOMAG_KEY)",
    )
    parser.add_argument(
        "--declination-sign",
        type=int,
        choices=[1, -1],
        default=default_decl.sign,
        help="Sign applied to the declination offset (default: +1)",
    )
    parser.add_argument("--invert-alpha", action="store_true", help="Treat alpha as clockwise")
    parser.add_argument("--cache", type=Path, default=None, help="Declination cache file (JSON)")
    parser.add_argument("--log-level", default="INFO", help="Log level (default: INFO)")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level)

    try:
        point = GeoPoint(args.lat, args.lon, args.alt)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2

    decl_config = DeclinationConfig(noaa_api_key=args.declination_key, sign=args.declination_sign)
    engine_config = EngineConfig(
        bearing_method=args.method,
        invert_alpha=args.invert_alpha,
        declination=decl_config,
    )
    provider = DeclinationProvider(decl_config)
    if args.cache:
        try:
            provider.load_cache(args.cache)
        except ValueError as exc:
            logger.error("%s", exc)
            return 1
    engine = DirectionEngine(engine_config, provider=provider)

    try:
        if args.samples is None:
            bearing = engine.ingest_position(point)
            print(f"Qibla bearing: {bearing:.2f}° ({engine.state.bearing_method})")
            return 0

        session = CompassSession(engine, SessionConfig(frame_ms=args.frame_ms))
        frames = asyncio.run(replay(session, point, read_events(args.samples)))
        logger.info("Replayed %d frames", frames)
        return 0
    except CompassError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        engine.close(wait=bool(args.cache))
        if args.cache:
            provider.save_cache(args.cache)


if __name__ == "__main__":
    sys.exit(main())
