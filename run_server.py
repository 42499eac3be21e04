"""Simple server runner for local development."""
import logging
import signal
import sys

import uvicorn

from pharmadesk.core.config import settings


def handle_signal(sig, frame):
    print(f"\nReceived signal {sig}, shutting down gracefully...")
    sys.exit(0)


signal.signal(signal.SIGINT, handle_signal)
signal.signal(signal.SIGTERM, handle_signal)

if __name__ == "__main__":
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print("=" * 50)
    print("  Starting PharmaDesk Backend")
    print("=" * 50)
    uvicorn.run(
        "pharmadesk.main:app",
        host="127.0.0.1",
        port=8000,
        log_level="info",
    )
