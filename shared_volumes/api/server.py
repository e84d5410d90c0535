"""
Uvicorn server entrypoint for the Shared Volumes plugin.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
from pathlib import Path

import uvicorn

from shared_volumes.api.services import volume_service
from shared_volumes.cli.lib.config import load_config

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shared-volumes-plugin", description="Docker volume plugin for shared filesystem directories"
    )
    parser.add_argument("--root", default=None, help="Base directory where volumes are created in the cluster")
    parser.add_argument("--hostname", default=None, help="Host identifier used in locking operations")
    parser.add_argument("--socket", default=None, help="Unix socket to listen on (default: from config)")
    parser.add_argument("--host", default=None, help="Bind host, used when no socket is set")
    parser.add_argument("--port", type=int, default=None, help="Bind port, used when no socket is set")
    parser.add_argument("--debug", action="store_true", default=None, help="Enable verbose logging")
    parser.add_argument("--log-level", default=None, help="Uvicorn log level (default: debug or info)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = load_config()

    overrides = {}
    if args.root:
        overrides["root"] = Path(args.root)
    if args.hostname:
        overrides["hostname"] = args.hostname
    if args.socket is not None:
        overrides["socket_path"] = args.socket
    if args.debug:
        overrides["debug"] = True
    cfg = dataclasses.replace(cfg, **overrides)

    log_level = args.log_level or ("debug" if cfg.debug else "info")
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.debug("Starting with hostname=%s; root=%s", cfg.hostname, cfg.root)

    volume_service.configure(cfg)

    if cfg.socket_path:
        Path(cfg.socket_path).parent.mkdir(parents=True, exist_ok=True)
        if os.path.exists(cfg.socket_path):
            os.unlink(cfg.socket_path)
        uvicorn.run("shared_volumes.api.main:app", uds=cfg.socket_path, log_level=log_level)
    else:
        host = args.host or cfg.api_host
        port = args.port or cfg.api_port
        uvicorn.run("shared_volumes.api.main:app", host=host, port=port, log_level=log_level)
    return 0
