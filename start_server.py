#!/usr/bin/env python3
"""Start the geo coordination API, honoring the PORT environment variable."""

import logging
import os
import sys
from pathlib import Path

import uvicorn

SRC_DIR = Path(__file__).resolve().parent / "src"


def _port() -> int:
    raw = os.environ.get("PORT", "8000")
    try:
        return int(raw)
    except ValueError:
        logging.warning(f"Invalid PORT value '{raw}', using default 8000")
        return 8000


def main() -> None:
    if SRC_DIR.is_dir() and str(SRC_DIR) not in sys.path:
        sys.path.insert(0, str(SRC_DIR))

    uvicorn.run(
        "housie_geo.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=_port(),
        proxy_headers=True,
        forwarded_allow_ips="*",
    )


if __name__ == "__main__":
    main()
