#!/usr/bin/env python3
"""
Manual check that concurrent requests do not see each other's engine config.

Fires several POST /render requests at once against a running server, each
with a different ``config`` override, and compares every response with the
same request sent on its own.
"""

import asyncio
import time

import httpx

API_URL = "http://localhost:8000"

SOURCE = r"\frac{a}{b} + \sqrt{x^2 + 1}"

CONFIGS = [
    {"name": "default", "config": {}},
    {"name": "no semantics", "config": {"menuSettings": {"semantics": False}}},
    {"name": "scaled", "config": {"SVG": {"scale": 200}}},
    {"name": "no tex hints", "config": {"menuSettings": {"texHints": False}}},
]


async def render(client: httpx.AsyncClient, config: dict) -> str:
    response = await client.post(
        f"{API_URL}/render",
        json={"input": "latex", "output": "svg", "source": SOURCE, "config": config},
    )
    response.raise_for_status()
    return response.text


async def check_concurrent_overrides():
    """Compare concurrent responses with sequential baselines."""
    print("Concurrent Config Override Test")
    print("=" * 40)
    print(f"API URL: {API_URL}")
    print()

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(f"{API_URL}/health")
            if response.status_code != 200:
                print("API not responding. Make sure it's running.")
                return False
    except Exception as e:
        print(f"Cannot connect to API: {e}")
        return False

    async with httpx.AsyncClient(timeout=60.0) as client:
        print("Collecting sequential baselines...")
        baselines = {}
        for case in CONFIGS:
            start = time.time()
            baselines[case["name"]] = await render(client, case["config"])
            print(f"   {case['name']}: {len(baselines[case['name']])} chars in {time.time() - start:.2f}s")

        print("\nSending the same requests concurrently (x5)...")
        start = time.time()
        cases = CONFIGS * 5
        results = await asyncio.gather(
            *(render(client, case["config"]) for case in cases),
            return_exceptions=True,
        )
        print(f"   {len(cases)} requests in {time.time() - start:.2f}s")

    mismatches = 0
    for case, result in zip(cases, results):
        if isinstance(result, Exception):
            print(f"   Failed ({case['name']}): {result}")
            mismatches += 1
        elif result != baselines[case["name"]]:
            print(f"   Mismatch ({case['name']}): output differs from its baseline")
            mismatches += 1

    if mismatches:
        print(f"\n{mismatches} request(s) did not match their baseline")
        return False

    print("\nAll concurrent responses matched their sequential baselines")
    return True


def main():
    asyncio.run(check_concurrent_overrides())


if __name__ == "__main__":
    main()
