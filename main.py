"""Narrative Engine dev launcher. Serves the engine API with uvicorn."""

import argparse
import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

PROJECT_DIR = Path(__file__).parent
load_dotenv(PROJECT_DIR / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = int(os.getenv("BACKEND_PORT", "13013"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def main():
    parser = argparse.ArgumentParser(description="Narrative Engine dev launcher")
    parser.add_argument("--data-dir", metavar="DIR", type=Path,
                        help="Data directory for config.json and world.json (default: ./data)")
    parser.add_argument("--demo", default=False, action="store_true",
                        help="Write the demo forest world into the data directory")
    parser.add_argument("--no-reload", action="store_true",
                        help="Disable auto-reload")
    opts = parser.parse_args()

    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    data_dir = (opts.data_dir or PROJECT_DIR / "data").resolve()
    if opts.demo:
        from narrative_engine.demo import create_demo_data
        data_dir.mkdir(parents=True, exist_ok=True)
        path = create_demo_data(data_dir)
        print(f"Demo world written to {path}")

    # The app reads DATA_DIR at import time, including in reload workers
    os.environ["DATA_DIR"] = str(data_dir)

    print(f"Narrative Engine API on http://localhost:{BACKEND_PORT}/api")
    uvicorn.run(
        "narrative_engine.app:app",
        host=HOST,
        port=BACKEND_PORT,
        reload=not opts.no_reload,
        log_level=LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
