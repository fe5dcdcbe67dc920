# retailer_api/__main__.py
"""
Run the API with uvicorn.

Usage:
    python -m retailer_api

HOST / PORT override the bind address (default 0.0.0.0:8000).
"""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "retailer_api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
