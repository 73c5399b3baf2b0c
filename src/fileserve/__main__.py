"""
=============================================================================
COMMAND LINE ENTRY POINT
=============================================================================

    fileserve                         # serve the current directory on :3000
    fileserve ./public -p 8080        # another directory and port
    fileserve dist --single           # single page app: unknown paths → index
    fileserve . -i node_modules/,.env # hide (and 404) extra names
    python -m fileserve --help

=============================================================================
STARTUP
=============================================================================

    parse args ──► ServerConfig.from_env(**args) ──► validate()
                                                        │
                      ConfigurationError ──► stderr, exit 1
                                                        │
    port taken? ──► pick a free one ──► banner ──► HTTPServer.run()

The banner is skipped with --silent, and when NOW is set (hosted
deployments, where nobody reads the console).

=============================================================================
"""

import argparse
import dataclasses
import os
import socket
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ConfigurationError, ServerConfig, parse_ignore_list
from .core import find_open_port, is_port_available
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fileserve",
        description="Serve a directory over HTTP, with listings, SPA fallback and caching",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fileserve                          # Serve the current directory
  fileserve ./public --port 8080     # Custom directory and port
  fileserve dist --single            # Rewrite unknown paths to index.html
  fileserve --ignore node_modules/   # Hide extra names
        """
    )

    parser.add_argument(
        "directory",
        nargs="?",
        default=None,
        help="Directory to serve (default: current directory)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # SERVING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: $PORT or 3000)"
    )

    parser.add_argument(
        "--cache", "-c",
        type=int,
        default=None,
        metavar="SECONDS",
        help="Cache-Control max-age for files (default: 3600)"
    )

    parser.add_argument(
        "--single", "-s",
        action="store_true",
        help="Serve the root index.html for paths that don't exist"
    )

    parser.add_argument(
        "--unzipped", "-u",
        action="store_true",
        help="Disable gzip compression"
    )

    parser.add_argument(
        "--ignore", "-i",
        default=None,
        metavar="NAMES",
        help="Comma separated names to hide, directories with a trailing / "
             "(.DS_Store and .git/ are always hidden)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # PROCESS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host",
        default=None,
        help="Address to bind (default: 0.0.0.0, all interfaces)"
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Worker threads (max will be 2x this)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--silent",
        action="store_true",
        help="Don't print the startup banner"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"fileserve {__version__}"
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """
    Build the configuration; flags win over environment variables.

    Raises:
        ConfigurationError: On invalid values (validate() is called).
    """
    overrides = dict(
        root_directory=os.path.abspath(args.directory) if args.directory else None,
        port=args.port,
        cache_seconds=args.cache,
        single_page=args.single,
        gzip_disabled=args.unzipped,
        ignored_names=parse_ignore_list(args.ignore),
        host=args.host,
        log_level=args.log_level,
    )

    if args.workers is not None:
        overrides["min_workers"] = args.workers
        overrides["max_workers"] = args.workers * 2

    config = ServerConfig.from_env(**overrides)
    config.validate()
    return config


def network_address() -> Optional[str]:
    """Best guess at this machine's LAN address, for the banner."""
    try:
        address = socket.gethostbyname(socket.gethostname())
    except OSError:
        return None
    return None if address.startswith("127.") else address


def print_banner(config: ServerConfig, note: Optional[str] = None):
    local = f"http://localhost:{config.port}"
    lines = ["Serving!", "", f"- Local:            {local}"]

    if config.host in ("0.0.0.0", ""):
        address = network_address()
        if address:
            lines.append(f"- On Your Network:  http://{address}:{config.port}")

    if note:
        lines += ["", note]

    width = max(len(line) for line in lines) + 4

    print()
    print("╔" + "═" * width + "╗")
    for line in lines:
        print("║  " + line.ljust(width - 2) + "║")
    print("╚" + "═" * width + "╝")
    print()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run the file server.

    Returns:
        Process exit status: 0 after a clean shutdown, 1 on bad
        configuration or when the socket can't be bound.
    """
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # ─────────────────────────────────────────────────────────────────────
    # PORT ALREADY TAKEN: pick another instead of failing
    # ─────────────────────────────────────────────────────────────────────
    note = None
    if not is_port_available(config.host, config.port):
        open_port = find_open_port(config.host)
        note = f"This port was picked because {config.port} is in use."
        config = dataclasses.replace(config, port=open_port)

    if not (args.silent or os.environ.get("NOW")):
        print_banner(config, note)

    try:
        HTTPServer(config).run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
