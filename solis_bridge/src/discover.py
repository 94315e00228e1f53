"""
SolisCloud device-id discovery -- setup helper.

Walks every station visible to an API key, lists the inverters of each
station, and prints the device ids to use as ``SOLIS_DEVICE_ID``. With
``--detail`` it also fetches one telemetry record per device to confirm the
id works end to end.

Usage:
    solis-bridge-discover --api-key KEY --api-secret SECRET
    solis-bridge-discover --detail   # credentials from SOLIS_API_KEY / SOLIS_API_SECRET

CHANGELOG:
- 2026-10-18: Initial creation
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys

from solis_bridge.src.client import DEFAULT_BASE_URL, SolisClient
from solis_bridge.src.errors import BridgeError


async def discover_device_ids(client: SolisClient, *, verbose: bool = True) -> list[str]:
    """Return the device ids (``inverterId``) of all inverters across all stations.

    A station whose inverter list fails is reported on stderr and skipped.
    """
    stations = await client.list_stations()
    station_ids = [s.get("id") for s in stations if s.get("id") is not None]
    if verbose:
        print(f"Found {len(station_ids)} station(s): {', '.join(map(str, station_ids))}")

    device_ids: list[str] = []
    for station_id in station_ids:
        try:
            inverters = await client.list_inverters(station_id)
        except BridgeError as exc:
            print(f"[error] station {station_id}: {exc}", file=sys.stderr)
            continue
        ids = [
            str(r.get("inverterId") or r.get("id"))
            for r in inverters
            if r.get("inverterId") or r.get("id")
        ]
        if not ids:
            print(f"[warn] no devices found for station {station_id}", file=sys.stderr)
            continue
        if verbose:
            print(f"Station {station_id}: {len(ids)} device(s): {', '.join(ids)}")
        device_ids.extend(ids)
    return device_ids


async def _main(args: argparse.Namespace) -> int:
    if not args.api_key or not args.api_secret:
        print("API key and secret are required (flags or SOLIS_API_KEY/SOLIS_API_SECRET)", file=sys.stderr)
        return 2

    client = SolisClient(
        base_url=args.base_url,
        api_key=args.api_key,
        api_secret=args.api_secret,
    )
    try:
        device_ids = await discover_device_ids(client)
    except BridgeError as exc:
        print(f"[error] station list: {exc}", file=sys.stderr)
        return 1

    if not device_ids:
        print("No devices found in any station", file=sys.stderr)
        return 1

    for device_id in device_ids:
        if args.detail:
            try:
                response = await client.fetch_telemetry(device_id)
            except BridgeError as exc:
                print(f"[error] detail for {device_id}: {exc}", file=sys.stderr)
                continue
            print(json.dumps(response, indent=2))
        print(f"Device id for SOLIS_DEVICE_ID: {device_id}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="List SolisCloud device ids")
    parser.add_argument("--api-key", default=os.environ.get("SOLIS_API_KEY", ""))
    parser.add_argument("--api-secret", default=os.environ.get("SOLIS_API_SECRET", ""))
    parser.add_argument("--base-url", default=os.environ.get("SOLIS_BASE_URL", DEFAULT_BASE_URL))
    parser.add_argument("--detail", action="store_true", help="Fetch one telemetry record per device")
    args = parser.parse_args()
    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
