#!/usr/bin/env python3
"""Manual check that the configured OSRM server can route a short trip."""

import asyncio
import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from courier.config import settings
from courier.services.routing.osrm_client import OSRMClient, check_health


def main():
    print("=" * 60)
    print("OSRM Connection Test")
    print("=" * 60)
    print()

    if not settings.osrm_base_url:
        print("[ERROR] COURIER_OSRM_BASE_URL is not configured")
        return 1
    print(f"[OK] OSRM Base URL: {settings.osrm_base_url} (profile: {settings.osrm_profile})")

    print("Checking OSRM health...")
    if not check_health():
        print("[ERROR] OSRM service is not responding")
        return 1
    print("[OK] OSRM service is reachable")

    lat, lon = settings.map_default_center
    waypoints = [(lat, lon), (lat + 0.004, lon + 0.003), (lat + 0.008, lon - 0.002)]
    print(f"Routing through {len(waypoints)} waypoints around the store...")
    try:
        path = asyncio.run(OSRMClient().compute_route(waypoints))
    except Exception as e:
        print(f"[ERROR] Route request failed: {e}")
        return 1

    print(f"[OK] {path.distance_m:.0f} m, {path.duration_s / 60:.1f} min, {len(path.geometry)} geometry points")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
