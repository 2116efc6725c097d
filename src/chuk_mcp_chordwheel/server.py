#!/usr/bin/env python3
"""
Entry point for the CHUK Chord Wheel MCP Server.

This module provides the main entry point for the MCP server,
supporting multiple transport modes (stdio, http).
"""

import argparse
import asyncio
import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point with transport detection."""
    parser = argparse.ArgumentParser(description="CHUK Chord Wheel MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport mode (default: stdio)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="HTTP port (only for http transport)",
    )
    parser.add_argument(
        "--songs-dir",
        help="Directory of *.song.yaml files (default: ./songs)",
    )
    parser.add_argument(
        "--output-dir",
        help="Directory for exported WAV and MIDI files (default: ./output)",
    )
    parser.add_argument(
        "--samples-dir",
        help="Directory of instrument samples (default: ./samples)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    # The server module reads its paths from the environment at import time
    for option, env_var in (
        (args.songs_dir, "CHORDWHEEL_SONGS_DIR"),
        (args.output_dir, "CHORDWHEEL_OUTPUT_DIR"),
        (args.samples_dir, "CHORDWHEEL_SAMPLES_DIR"),
    ):
        if option:
            os.environ[env_var] = option

    # Import after argument parsing to avoid issues
    from chuk_mcp_chordwheel.async_server import mcp

    if args.transport == "stdio":
        logger.info("Starting CHUK Chord Wheel MCP Server (stdio)")
        asyncio.run(mcp.run_stdio())
    else:
        logger.info(f"Starting CHUK Chord Wheel MCP Server (http:{args.port})")
        asyncio.run(mcp.run_http(port=args.port))


if __name__ == "__main__":
    main()
