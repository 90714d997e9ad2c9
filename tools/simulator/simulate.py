#!/usr/bin/env python3
"""fixlog GPS tracker simulator.

Generates realistic tracker traffic for testing the server: ESP32 devices
buffer fixes and upload them in batches over Wi-Fi (occasionally resending
a batch, as firmware does after a timeout), LoRa devices send one fix per
uplink through a TTN-style webhook envelope.

Usage:
    # 5 devices driving around Lyon for 10 minutes
    python -m tools.simulator.simulate --server http://localhost:8000 --token $TOKEN --devices 5 --duration 600

    # LoRa only, one fix every 30 s
    python -m tools.simulator.simulate --server http://localhost:8000 --token $TOKEN --lora-ratio 1 --fix-interval 30

    # Single device, specific location
    python -m tools.simulator.simulate --server http://localhost:8000 --token $TOKEN --center 48.8566,2.3522
"""

from __future__ import annotations

import argparse
import asyncio
import json
import math
import random
import time
from dataclasses import dataclass, field

import httpx

from fixlog.core.uplink import decode_uplink, encode_uplink


@dataclass
class SimDevice:
    device_id: str
    lat: float
    lon: float
    bearing: float
    speed_mps: float
    lora: bool = False
    battery: int = 100
    seq: int = 0
    pending: list[dict] = field(default_factory=list)
    fixes_sent: int = 0
    written: int = 0
    duplicates: int = 0
    errors: int = 0


def make_fix(device: SimDevice, ts: int) -> dict:
    """Create a single fix in the batch endpoint's wire format."""
    device.seq += 1
    return {
        "seq": device.seq,
        "ts": ts,
        "latE7": round(device.lat * 10_000_000),
        "lonE7": round(device.lon * 10_000_000),
        "ch": "wifi",
        "net": random.choice(["home", "office", "hotspot"]),
        "bat": device.battery,
        "flags": random.choice([0, 0, 0, 1]),
    }


def make_uplink_envelope(device: SimDevice, ts: int) -> dict:
    """Wrap a fix the way the network server forwards a LoRa uplink."""
    frame = encode_uplink(ts, round(device.lat * 10_000_000),
                          round(device.lon * 10_000_000), device.battery)
    return {
        "end_device_ids": {"device_id": device.device_id},
        "uplink_message": {
            "f_port": 1,
            "decoded_payload": decode_uplink(frame),
        },
    }


def move_device(device: SimDevice, dt_seconds: float) -> None:
    """Move a device along its current bearing, with random turns."""
    # Random bearing change (simulates turns)
    device.bearing = (device.bearing + random.uniform(-15, 15)) % 360

    # Random speed variation (city driving: 5-15 m/s)
    device.speed_mps = max(3.0, min(20.0, device.speed_mps + random.uniform(-1, 1)))

    distance_m = device.speed_mps * dt_seconds
    bearing_rad = math.radians(device.bearing)

    # Approximate: 1 degree latitude is about 111,000 m
    dlat = (distance_m * math.cos(bearing_rad)) / 111_000
    dlon = (distance_m * math.sin(bearing_rad)) / (111_000 * math.cos(math.radians(device.lat)))

    device.lat += dlat
    device.lon += dlon

    if random.random() < 0.02:
        device.battery = max(0, device.battery - 1)


async def _post(client: httpx.AsyncClient, url: str, device: SimDevice, payload,
                params: dict | None = None) -> None:
    try:
        resp = await client.post(
            url,
            params=params,
            content=json.dumps(payload),
            headers={"content-type": "application/json"},
        )
    except httpx.RequestError:
        device.errors += 1
        return
    if resp.status_code != 200:
        device.errors += 1
        return
    result = resp.json()
    device.written += result["written"]
    device.duplicates += result["skipped_dup"]


async def run_device(
    client: httpx.AsyncClient,
    device: SimDevice,
    server_url: str,
    fix_interval: float,
    batch_size: int,
    retry_ratio: float,
    duration_seconds: float,
) -> None:
    """Simulate a single tracker."""
    url = f"{server_url}/api/v1/gps_batch"
    end_time = time.monotonic() + duration_seconds

    while time.monotonic() < end_time:
        move_device(device, fix_interval)
        ts = int(time.time())

        if device.lora:
            await _post(client, url, device, make_uplink_envelope(device, ts))
            device.fixes_sent += 1
        else:
            device.pending.append(make_fix(device, ts))
            if len(device.pending) >= batch_size:
                batch, device.pending = device.pending, []
                await _post(client, url, device, batch, params={"device": device.device_id})
                device.fixes_sent += len(batch)
                if random.random() < retry_ratio:
                    # Lost acknowledgment: the firmware uploads the same batch again.
                    await _post(client, url, device, batch, params={"device": device.device_id})

        await asyncio.sleep(fix_interval)


async def run_simulation(args: argparse.Namespace) -> None:
    """Run the full simulation."""
    center_lat, center_lon = args.center
    devices = []
    for i in range(args.devices):
        # Scatter devices within radius of center
        angle = random.uniform(0, 2 * math.pi)
        dist_km = random.uniform(0, args.radius_km)
        lat = center_lat + (dist_km / 111.0) * math.cos(angle)
        lon = center_lon + (dist_km / (111.0 * math.cos(math.radians(center_lat)))) * math.sin(angle)
        lora = random.random() < args.lora_ratio

        devices.append(SimDevice(
            device_id=f"{'lora' if lora else 'esp32'}-sim-{i:03d}",
            lat=lat,
            lon=lon,
            bearing=random.uniform(0, 360),
            speed_mps=random.uniform(5, 15),
            lora=lora,
        ))

    print(f"Starting simulation: {args.devices} devices, one fix every {args.fix_interval}s")
    print(f"  Center: {center_lat:.4f}, {center_lon:.4f}")
    print(f"  Radius: {args.radius_km} km")
    print(f"  Duration: {args.duration}s")
    print(f"  Server: {args.server}")
    print(f"  LoRa devices: {sum(d.lora for d in devices)}")
    print()

    start = time.monotonic()
    headers = {"X-API-Token": args.token}

    async with httpx.AsyncClient(timeout=10.0, headers=headers) as client:
        tasks = [
            run_device(client, dev, args.server, args.fix_interval,
                       args.batch_size, args.retry_ratio, args.duration)
            for dev in devices
        ]
        await asyncio.gather(*tasks)

        elapsed = time.monotonic() - start
        total_sent = sum(d.fixes_sent for d in devices)
        total_written = sum(d.written for d in devices)
        total_dup = sum(d.duplicates for d in devices)
        total_errors = sum(d.errors for d in devices)

        print(f"\nSimulation complete in {elapsed:.1f}s")
        print(f"  Fixes sent: {total_sent}")
        print(f"  Fixes written: {total_written}")
        print(f"  Duplicates collapsed: {total_dup}")
        print(f"  Errors: {total_errors}")

        # Check server stats
        try:
            resp = await client.get(f"{args.server}/api/v1/stats")
        except httpx.RequestError:
            return
        if resp.status_code == 200:
            stats = resp.json()
            print("\nServer stats:")
            print(f"  Fixes received: {stats['fixes_received']}")
            print(f"  Fixes written: {stats['fixes_written']}")
            print(f"  Active devices (esp32): {stats['active_devices']['esp32']}")
            print(f"  Active devices (ttn): {stats['active_devices']['ttn']}")


def main():
    parser = argparse.ArgumentParser(description="fixlog GPS tracker simulator")
    parser.add_argument("--server", default="http://localhost:8000", help="Server URL")
    parser.add_argument("--token", default="CHANGE_ME_LONG_RANDOM_TOKEN", help="X-API-Token value")
    parser.add_argument("--devices", type=int, default=5, help="Number of simulated devices")
    parser.add_argument("--duration", type=int, default=60, help="Simulation duration in seconds")
    parser.add_argument("--fix-interval", type=float, default=5.0, help="Seconds between fixes")
    parser.add_argument("--batch-size", type=int, default=6, help="Fixes per ESP32 upload")
    parser.add_argument("--retry-ratio", type=float, default=0.2,
                        help="Probability an ESP32 batch is uploaded twice")
    parser.add_argument("--lora-ratio", type=float, default=0.3,
                        help="Share of devices sending through the LoRa webhook")
    parser.add_argument("--center", type=str, default="45.764,4.835",
                        help="Center lat,lon (default: Lyon)")
    parser.add_argument("--radius-km", type=float, default=5.0, help="Scatter radius in km")

    args = parser.parse_args()

    # Parse center
    lat, lon = args.center.split(",")
    args.center = (float(lat), float(lon))

    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
