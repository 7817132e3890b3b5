"""Entry point: python -m impact_engine"""

from __future__ import annotations

import argparse

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the impact consequence service")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    args = parser.parse_args()
    uvicorn.run("impact_engine.app:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
