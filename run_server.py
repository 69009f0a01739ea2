#!/usr/bin/env python3
"""
Run the polyomino duel web API server.
"""

import argparse
import logging
from pathlib import Path

import uvicorn

from engine.config import GameSettings
from schemas.game_config import GameConfig
from utils.logging_setup import setup_logging
from webapi.app import create_app


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Polyomino duel web API server")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on")
    parser.add_argument("--config", type=Path, default=None, help="YAML or JSON file with game settings")
    parser.add_argument("--board-size", default=None, help="Board size for the first game (clamped to 5..1000)")
    parser.add_argument("--seed", default=None, help="Seed text for the first game")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-dir", type=Path, default=None, help="Also write logs to this directory")
    return parser.parse_args(argv)


def build_initial_config(args: argparse.Namespace) -> GameConfig:
    settings = GameSettings.from_file(args.config) if args.config else GameSettings()
    values = settings.to_dict()
    if args.board_size is not None:
        values["board_size"] = args.board_size
    if args.seed is not None:
        values["seed"] = args.seed
    return GameConfig(**values)


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_logging(getattr(logging, args.log_level), args.log_dir)

    app = create_app(build_initial_config(args))

    print("Starting Polyomino Duel API server...")
    print(f"Server will be available at: http://{args.host}:{args.port}")
    print(f"API documentation at:  http://{args.host}:{args.port}/docs")
    print("Press Ctrl+C to stop the server")

    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
