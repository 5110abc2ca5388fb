"""Campus Sim — dev launcher. Starts the API server in watch mode."""

import argparse
import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
BACKEND_PORT = int(os.getenv("BACKEND_PORT", "13013"))


def main():
    parser = argparse.ArgumentParser(description="Campus Sim dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Save and settings directory (default: ./data)")
    parser.add_argument("--port", type=int, default=BACKEND_PORT,
                        help=f"Backend port (default: {BACKEND_PORT})")
    parser.add_argument("--no-reload", action="store_true",
                        help="Disable auto-reload on code changes")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "info"),
                        help="Logging level (debug, info, warning, ...)")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # backend.app reads DATA_DIR when the reloader imports it
    if args.data_dir:
        os.environ["DATA_DIR"] = str(args.data_dir.resolve())

    print(f"Starting backend on http://localhost:{args.port} ...")
    uvicorn.run(
        "backend.app:app",
        host=HOST,
        port=args.port,
        reload=not args.no_reload,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
