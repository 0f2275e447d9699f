#!/usr/bin/env python3
"""Simple script to run the Math Render API server."""

import os
import uvicorn
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

if __name__ == "__main__":
    # Get configuration from environment
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("RELOAD", "true").lower() in {"1", "true", "yes", "on"}

    print(f"Starting Math Render API server on {host}:{port}")
    print(f"Render endpoint available at: http://{host}:{port}/render")
    print(f"Health check available at: http://{host}:{port}/health")

    # Run the server
    uvicorn.run(
        "mathrender_api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=os.getenv("LOG_LEVEL", "info"),
    )
