# File: smart_parking/presentation/cli.py
"""
Administration command line

    smart-parking list
    smart-parking near --lat 44.0 --lon 11.0 --radius 5
    smart-parking occupy --user U1 --slot S1 --minutes 60
    smart-parking extend --user U1 --slot S1 --until 2026-10-19T18:00:00Z
    smart-parking free --slot S1
    smart-parking seed slots.json
"""

import argparse
import json
import logging
from datetime import datetime, timedelta
from http import HTTPStatus
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from ..application.dtos import SlotSeedDTO
from ..application.results import ResultKind, ResultCode
from ..domain.errors import DuplicateSlotError, RepositoryUnavailableError
from ..domain.models import Center, ensure_utc, utc_now
from .responses import ResponseEncoder, Response

logger = logging.getLogger(__name__)

_SEED_ADAPTER = TypeAdapter(List[SlotSeedDTO])


def _timestamp(value: str) -> datetime:
    """argparse type for ISO-8601 timestamps (a trailing Z is accepted)"""
    try:
        return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid ISO-8601 timestamp: {value}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="smart-parking", description="Parking slot occupancy administration")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List all parking slots")

    near = subparsers.add_parser("near", help="Slots within a radius of a point")
    near.add_argument("--lat", type=float, required=True, help="Latitude of the center")
    near.add_argument("--lon", type=float, required=True, help="Longitude of the center")
    near.add_argument("--radius", type=float, required=True, help="Radius in kilometers")

    for name, help_text in (("occupy", "Occupy a free slot"), ("extend", "Extend an occupation")):
        command = subparsers.add_parser(name, help=help_text)
        command.add_argument("--user", required=True, help="Occupier id")
        command.add_argument("--slot", required=True, help="Parking slot id")
        until = command.add_mutually_exclusive_group(required=True)
        until.add_argument("--until", type=_timestamp, help="Stop end (ISO-8601)")
        until.add_argument("--minutes", type=int, help="Stop end relative to now")

    free = subparsers.add_parser("free", help="Free a slot")
    free.add_argument("--slot", required=True, help="Parking slot id")

    seed = subparsers.add_parser("seed", help="Insert slots from a JSON file")
    seed.add_argument("file", help="JSON list of {id?, latitude, longitude}")

    return parser


def _stop_end(args) -> datetime:
    if args.until is not None:
        return args.until
    return utc_now() + timedelta(minutes=args.minutes)


def _seed(app, path: str, encoder: ResponseEncoder) -> Response:
    with open(path, encoding="utf-8") as handle:
        slots = _SEED_ADAPTER.validate_json(handle.read())

    # Radius search needs the 2dsphere index on stores that support one
    if hasattr(app.slot_repository, "ensure_indexes"):
        app.slot_repository.ensure_indexes()

    inserted = 0
    for slot in slots:
        try:
            app.slot_repository.add(slot.to_domain())
        except DuplicateSlotError as e:
            logger.error(f"Seeding {path} stopped after {inserted} slot(s): {e}")
            status, body = encoder.error(
                ResultKind.CONFLICT, ResultCode.PARKING_SLOT_ALREADY_EXISTS,
                f"{e}; {inserted} slot(s) inserted before it were kept"
            )
            body["slotId"] = e.slot_id
            body["inserted"] = inserted
            return status, body
        inserted += 1
    logger.info(f"Seeded {inserted} parking slots from {path}")
    return HTTPStatus.OK, {"successCode": "Success", "inserted": inserted}


def dispatch(app, args, encoder: Optional[ResponseEncoder] = None) -> Response:
    encoder = encoder or ResponseEncoder()
    service = app.occupancy_service

    if args.command == "list":
        return encoder.encode_slot_list(service.list_slots())
    if args.command == "near":
        return encoder.encode_slot_list(service.find_slots_within_radius(Center.of(args.lat, args.lon, args.radius)))
    if args.command == "occupy":
        return encoder.encode_occupancy(service.occupy(args.user, args.slot, _stop_end(args)))
    if args.command == "extend":
        return encoder.encode_occupancy(service.extend(args.user, args.slot, _stop_end(args)))
    if args.command == "free":
        return encoder.encode_occupancy(service.free(args.slot))
    if args.command == "seed":
        return _seed(app, args.file, encoder)
    raise ValueError(f"Unknown command: {args.command}")


def run(app, argv=None) -> int:
    """Parse argv, execute against app and print the JSON body"""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        status, body = dispatch(app, args)
    except RepositoryUnavailableError as e:
        logger.error(f"{args.command} failed: {e}")
        print(json.dumps({"errorCode": "ServiceUnavailable", "message": str(e)}, indent=2))
        return 1
    except (ValueError, ValidationError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(json.dumps({"errorCode": "InvalidRequest", "message": str(e)}, indent=2))
        return 2

    print(json.dumps(body, indent=2))
    return 0 if status < HTTPStatus.BAD_REQUEST else 1
