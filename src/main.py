"""
Main application entry point for the OpenCTI MCP server.

Serves MCP over HTTP POST (default) or stdio.
"""

# Standard library imports
import argparse
import asyncio
import sys
from pathlib import Path

import uvicorn

# Third-party imports
from dotenv import load_dotenv

# Local imports
from common.config import Config, get_mcp_auth_token, get_opencti_token, load_config
from common.logging import get_logger, setup_logging
from gateway.http import create_gateway_app
from opencti_mcp.opencti_client import OpenCTIClient
from opencti_mcp.session import SessionEngine
from opencti_mcp.tools import build_tool_registry
from opencti_mcp.transports.stdio import StdioTransport

# Load environment variables from .env file at module level
load_dotenv()

logger = get_logger(__name__)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="OpenCTI MCP Server")
    parser.add_argument(
        "--transport",
        choices=["http", "stdio"],
        default="http",
        help="Serve MCP over HTTP POST or stdin/stdout",
    )
    parser.add_argument("--port", type=int, help="Override the port to run on")
    parser.add_argument("--host", type=str, help="Override the host to run on")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    return parser.parse_args(argv)


def check_startup_requirements(config: Config) -> None:
    """
    Fail fast when the server cannot do useful work.

    Raises:
        SystemExit: If the OpenCTI token is missing
    """
    if not get_opencti_token():
        logger.critical(
            event="startup_failed",
            reason="OPENCTI_TOKEN environment variable is required",
            message="Cannot query OpenCTI without an API token (fail-fast policy)",
        )
        sys.exit(1)

    logger.info(
        event="startup_checks_passed",
        opencti_url=config.opencti.url,
        verify_ssl=config.opencti.verify_ssl,
    )


async def run_stdio(config: Config) -> None:
    """Run the stdio loop until EOF."""
    client = OpenCTIClient(config.opencti, token=get_opencti_token())
    try:
        session = SessionEngine(build_tool_registry(client))
        await StdioTransport(session, config.server).run()
    finally:
        await client.aclose()


def run_http(config: Config, host: str, port: int) -> None:
    auth_token = get_mcp_auth_token()
    app = create_gateway_app(config, auth_token=auth_token)

    logger.info(
        event="starting_server",
        host=host,
        port=port,
        endpoint=config.gateway.endpoint,
        authenticated=bool(auth_token),
    )

    # Run uvicorn synchronously (it creates its own event loop)
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_config=None,  # Use our custom logging setup
        access_log=False,  # Disable default access logs
    )


def main() -> None:
    """Main entry point."""
    try:
        args = parse_args()

        config = load_config(args.config)
        setup_logging(config)

        logger.info(
            event="application_starting",
            server=config.server.name,
            version=config.server.version,
            transport=args.transport,
        )

        check_startup_requirements(config)

        if args.transport == "stdio":
            asyncio.run(run_stdio(config))
        else:
            run_http(config, args.host or config.gateway.host, args.port or config.gateway.port)

    except KeyboardInterrupt:
        logger.info(event="application_shutdown", reason="Keyboard interrupt")
    except SystemExit as e:
        if e.code == 1:
            logger.critical(event="application_failed", reason="Startup checks failed")
        raise
    except Exception as e:
        logger.critical(event="application_crashed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    main()
