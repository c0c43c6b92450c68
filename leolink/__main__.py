"""
Leo Link command line.

Usage:
    python -m leolink agent            # run the browser agent
    python -m leolink serve            # run the automation server end
    python -m leolink probe            # is the server up? prints ON/OFF
"""

import sys
import time
import asyncio
import logging
import argparse
from pathlib import Path
from typing import Optional, List

from .config import LinkConfig, LOG_DIR

logger = logging.getLogger("leolink")


def setup_logging(verbose: bool = False, log_dir: Path = LOG_DIR):
    handlers = [logging.StreamHandler(sys.stdout)]
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / "leolink.log"))
    except OSError as e:
        print(f"File logging disabled: {e}", file=sys.stderr)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="leolink", description="Leo Link remote browser control")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    agent = sub.add_parser("agent", help="Run the browser agent")
    agent.add_argument("--url", help="Automation server WebSocket URL")
    agent.add_argument("--cdp-host", help="Browser remote debugging host")
    agent.add_argument("--cdp-port", type=int, help="Browser remote debugging port")
    agent.add_argument("--serialize", action="store_true", help="Execute one command at a time")

    serve = sub.add_parser("serve", help="Run the relay server the agent connects to")
    serve.add_argument("--host", help="Bind address")
    serve.add_argument("--port", type=int, help="Bind port")

    probe = sub.add_parser("probe", help="Check whether the automation server is reachable")
    probe.add_argument("--url", help="Automation server WebSocket URL")
    return parser


def _apply_overrides(config: LinkConfig, args: argparse.Namespace) -> LinkConfig:
    if getattr(args, "url", None):
        config.server_url = args.url
    if getattr(args, "cdp_host", None):
        config.cdp_host = args.cdp_host
    if getattr(args, "cdp_port", None):
        config.cdp_port = args.cdp_port
    if getattr(args, "serialize", False):
        config.serialize_commands = True
    return config


def _run_serve(config: LinkConfig, host: Optional[str], port: Optional[int]) -> int:
    from .browser.chrome_relay import start_chrome_relay

    server = start_chrome_relay(host or config.server_host, port or config.server_port, config.moments_dir)
    try:
        while server.get_status()["running"]:
            time.sleep(1)
    except KeyboardInterrupt:
        server.stop()
        return 0
    logger.error(f"Relay server on {server.host}:{server.port} is not running")
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = _build_parser().parse_args(argv)
    setup_logging(args.verbose)
    config = _apply_overrides(LinkConfig.from_env(), args)

    if args.command == "probe":
        from .agent.status import probe_server
        online = asyncio.run(probe_server(config.server_url))
        print("ON" if online else "OFF")
        return 0 if online else 1

    if args.command == "serve":
        return _run_serve(config, args.host, args.port)

    from .agent import run_agent
    try:
        asyncio.run(run_agent(config))
    except KeyboardInterrupt:
        logger.info("Agent stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
