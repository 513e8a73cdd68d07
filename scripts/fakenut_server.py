#!/usr/bin/env python3
# FakeNUT - Server Launcher
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Starts the fake NUT server on the configured address and serves the
# static FakeUPS device until interrupted.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""
Fake NUT server

Serves a NUT-compatible endpoint (default localhost:3493) backed by a single
simulated UPS called FakeUPS. The listen address can also be set with the
NUT_SERVER and NUT_PORT environment variables; VERBOSE=true logs every
received command.

Usage:
    scripts/fakenut_server.py --host 0.0.0.0 --port 3493 --verbose
"""

import sys
import signal
import logging
import argparse

from pydantic import ValidationError

from fakenut import FakeNUTServer, ServerConfig

log = logging.getLogger(__name__)


def main():
    """Main entry point"""
    try:
        config = ServerConfig()
    except ValidationError as e:
        print(f"Environment Configuration Error: {e}", file=sys.stderr)
        sys.exit(1)

    parser = argparse.ArgumentParser(description="Fake NUT (upsd) server")
    parser.add_argument("--host", default=config.host, help=f"Address to listen on (default: {config.host})")
    parser.add_argument("--port", default=config.port, type=int, help=f"Port to listen on (default: {config.port})")
    parser.add_argument("--verbose", action="store_true", default=config.verbose, help="Enable verbose (DEBUG) logging and log every command")
    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    log_format = '[%(asctime)s] %(levelname)s: %(message)s'
    logging.basicConfig(level=log_level, format=log_format, datefmt='%H:%M:%S')

    server = FakeNUTServer(host=args.host, port=args.port, verbose=args.verbose, config=config)

    def signal_handler(sig, frame):
        """Handle termination signals (SIGINT from Ctrl+C, SIGTERM from kill)"""
        log.info("Received signal %s, stopping", sig)
        server.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        server.serve_forever()
    except OSError as e:
        log.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
