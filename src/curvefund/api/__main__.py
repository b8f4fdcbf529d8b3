# src/curvefund/api/__main__.py
from __future__ import annotations

import os

import uvicorn

from curvefund.env import load_dotenv_if_present


def main() -> None:
    # Load .env early so CURVEFUND_* vars exist before anything reads them.
    load_dotenv_if_present()

    # Import after dotenv load (prevents "config read before env" surprises)
    from curvefund.api.app import create_app

    app = create_app()
    host = os.getenv("CURVEFUND_API_HOST", "127.0.0.1")
    port = int(os.getenv("CURVEFUND_API_PORT", "8080"))

    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
