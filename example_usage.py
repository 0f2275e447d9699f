#!/usr/bin/env python3
"""Example usage of the Math Render API."""

import asyncio
import httpx
from pathlib import Path


async def render_examples():
    """Render the same formula in every output kind."""

    # API endpoint (adjust if running on different host/port)
    api_url = "http://localhost:8000"
    source = r"e^{i \pi} + 1 = 0"

    print(f"Rendering: {source}")
    print(f"API endpoint: {api_url}/render")

    try:
        async with httpx.AsyncClient(timeout=60.0) as client:
            # 1. GET with query parameters
            print("\n1. LaTeX to MathML (GET)...")
            response = await client.get(
                f"{api_url}/render",
                params={"input": "latex", "output": "mathml", "source": source},
            )
            if response.status_code == 200:
                print(f"✓ Content-Type: {response.headers.get('content-type')}")
                print(f"✓ MathML preview: {response.text[:200]}...")
            else:
                print(f"✗ Error: {response.status_code}")
                print(f"✗ Details: {response.text}")
                return

            # 2. POST with a JSON body, output negotiated from Accept
            print("\n2. LaTeX to SVG (POST, negotiated)...")
            response = await client.post(
                f"{api_url}/render",
                json={"input": "latex", "inline": True, "source": source},
                headers={"Accept": "application/mathml+xml;q=0.5, image/svg+xml;q=0.9"},
            )
            if response.status_code == 200:
                output_file = Path("output.svg")
                output_file.write_text(response.text, encoding="utf-8")
                print(f"✓ Content-Type: {response.headers.get('content-type')}")
                print(f"✓ SVG saved to: {output_file.absolute()}")
            else:
                print(f"✗ Error: {response.status_code}")
                print(f"✗ Details: {response.text}")

            # 3. PNG with explicit width
            print("\n3. LaTeX to PNG (width=400)...")
            response = await client.post(
                f"{api_url}/render",
                json={"input": "latex", "output": "png", "width": 400, "source": source},
            )
            if response.status_code == 200:
                output_file = Path("output.png")
                output_file.write_bytes(response.content)
                print(f"✓ {len(response.content)} bytes saved to: {output_file.absolute()}")
            else:
                print(f"✗ Error: {response.status_code}")
                print(f"✗ Details: {response.text}")

            # 4. Assistive SVG bundle
            print("\n4. LaTeX to assistive SVG...")
            response = await client.post(
                f"{api_url}/render",
                json={"input": "latex", "output": "assistive-svg", "source": source},
            )
            if response.status_code == 200:
                data = response.json()
                print(f"✓ SVG: {len(data['svg'])} chars")
                print(f"✓ Assistive MathML: {data['assistiveML'][:120]}...")
            else:
                print(f"✗ Error: {response.status_code}")
                print(f"✗ Details: {response.text}")

    except httpx.ConnectError:
        print("✗ Error: Could not connect to the API server")
        print("Make sure the server is running with: python run_api.py")
    except httpx.TimeoutException:
        print("✗ Error: Request timed out")


async def test_api_endpoints():
    """Test basic API endpoints."""

    api_url = "http://localhost:8000"

    try:
        async with httpx.AsyncClient() as client:
            # Test root endpoint
            print("Testing root endpoint...")
            response = await client.get(f"{api_url}/")
            if response.status_code == 200:
                data = response.json()
                print(f"✓ API: {data['message']} v{data['version']}")
            else:
                print(f"✗ Root endpoint failed: {response.status_code}")

            # Test health endpoint
            print("Testing health endpoint...")
            response = await client.get(f"{api_url}/health")
            if response.status_code == 200:
                data = response.json()
                print(f"✓ Health: {data['status']}")
            else:
                print(f"✗ Health endpoint failed: {response.status_code}")

    except httpx.ConnectError:
        print("✗ Could not connect to API server")
        print("Make sure the server is running with: python run_api.py")


if __name__ == "__main__":
    print("Math Render API Example Usage")
    print("=" * 50)

    # Test basic endpoints first
    asyncio.run(test_api_endpoints())

    print("\n" + "=" * 50)

    asyncio.run(render_examples())
