#!/usr/bin/env python3
"""
Query contracts deployed through the factory for an owner wallet.

This script scans the factory deployer's transactions, classifies each
deployment receipt as ERC20 or ERC721, keeps the contracts owned by the
given wallet and prints a JSON summary with their metadata.
"""

import argparse
import logging
import sys
from typing import List, Optional

from deploy_discovery.lib.config import ConfigurationError, configure_logging, load_settings
from deploy_discovery.lib.formatters import write_json
from deploy_discovery.lib.pipeline import create_discovery
from deploy_discovery.lib.thirdweb_client import ThirdwebAPIError


logger = logging.getLogger("deploy_discovery")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="List factory-deployed ERC20/ERC721 contracts owned by a wallet.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Credentials from THIRDWEB_CLIENT_ID / THIRDWEB_SECRET_KEY, output to stdout
  %(prog)s --owner 0x681AA2C3266Dd8435411490773f28FE5fa0E5FF7

  # Explicit credentials, save to file
  %(prog)s --client-id ID --secret-key KEY --owner 0x... --output deploys.json
        """,
    )

    parser.add_argument(
        "--owner",
        required=True,
        help="Wallet address that must own the returned contracts",
    )
    parser.add_argument(
        "--deployer",
        help="Factory deployer wallet (default: DEPLOYER_WALLET or built-in)",
    )
    parser.add_argument("--client-id", help="thirdweb client ID")
    parser.add_argument("--secret-key", help="thirdweb secret key")
    parser.add_argument("--chain-id", type=int, help="Chain ID (default: 31)")
    parser.add_argument(
        "--since",
        type=int,
        help="Only consider transactions in blocks at or after this unix timestamp",
    )
    parser.add_argument(
        "--output",
        help="Output file path (timestamp auto-appended). If not specified, outputs to stdout.",
    )
    return parser


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    parsed_args = build_parser().parse_args(args)

    try:
        settings = load_settings(
            thirdweb_client_id=parsed_args.client_id,
            thirdweb_secret_key=parsed_args.secret_key,
            deployer_wallet=parsed_args.deployer,
            chain_id=parsed_args.chain_id,
        )
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    configure_logging(settings.log_level)
    discovery = create_discovery(settings)

    try:
        summary = discovery.query_deployed_contracts(parsed_args.owner, since=parsed_args.since)
    except ThirdwebAPIError as e:
        logger.error("Discovery failed: %s", e)
        return 1

    output_file = write_json(summary, parsed_args.output)
    if output_file:
        print(f"\nResults written to: {output_file}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
