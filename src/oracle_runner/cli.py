"""
Command-line interface for the Oracle Runner.

Provides commands for running the oracle interaction and inspecting the
administrative account.
"""

import argparse
import asyncio
import logging
import sys

import structlog

from oracle_runner import __version__
from oracle_runner.config import ConfigurationError, RunnerConfig, load_config
from oracle_runner.core.result import ExecutionStatus, WaitLevel
from oracle_runner.ledger.jsonrpc import JsonRpcLedger
from oracle_runner.report import ResultReporter
from oracle_runner.tx.signer import Keypair
from oracle_runner.workflow import OracleInteraction

EXIT_ABORTED = 1
EXIT_CONFIG_ERROR = 2

MIST_PER_SUI = 1_000_000_000


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="oracle-runner",
        description="Authorize with the oracle and interact with the consumer application",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--env-file",
        default=".env",
        help="Path of the .env file with credentials (default: .env)",
    )
    common.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: from configuration, INFO)",
    )
    common.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs in JSON format",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Run command
    run_parser = subparsers.add_parser(
        "run",
        parents=[common],
        help="Submit the authorize + interact transaction block",
    )
    run_parser.add_argument(
        "--gas-budget",
        type=int,
        default=None,
        help="Gas budget for the block (default: 10000000)",
    )
    run_parser.add_argument(
        "--wait-level",
        choices=[level.value for level in WaitLevel],
        default=None,
        help="Confirmation level to wait for (default: WaitForLocalExecution)",
    )
    run_parser.add_argument(
        "--no-effects",
        action="store_true",
        help="Do not report per-step effects",
    )
    run_parser.add_argument(
        "--no-object-changes",
        action="store_true",
        help="Do not report object changes",
    )
    run_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )

    # Address command
    subparsers.add_parser(
        "address",
        parents=[common],
        help="Show the administrative address",
    )

    # Gas command
    subparsers.add_parser(
        "gas",
        parents=[common],
        help="List the administrative account's gas coins",
    )

    return parser


def build_config(args: argparse.Namespace) -> RunnerConfig:
    """Load configuration, applying command-line overrides."""
    overrides = {
        "log_level": args.log_level,
        "log_json": True if args.log_json else None,
    }
    if args.command == "run":
        overrides.update({
            "gas_budget": args.gas_budget,
            "wait_level": args.wait_level,
            "show_effects": False if args.no_effects else None,
            "show_object_changes": False if args.no_object_changes else None,
        })
    return load_config(args.env_file, **overrides)


async def run_interaction(config: RunnerConfig, json_output: bool = False) -> int:
    """Run the oracle interaction and print the result."""
    async with OracleInteraction(config) as interaction:
        result = await interaction.run()

    print(ResultReporter().render(result, json_format=json_output))
    return EXIT_ABORTED if result.status == ExecutionStatus.ABORTED else 0


async def show_gas(config: RunnerConfig) -> int:
    """List gas coins owned by the administrative address."""
    keypair = Keypair.from_config(config)
    ledger = JsonRpcLedger.from_config(config)
    await ledger.connect()

    try:
        coins = await ledger.get_gas_coins(keypair.address)
    finally:
        await ledger.disconnect()

    total = sum(coin.balance for coin in coins)
    print(f"Address: {keypair.address}")
    print(f"Coins:   {len(coins)}")
    print(f"Total:   {total / MIST_PER_SUI:.9f} SUI ({total:,} MIST)")
    for coin in coins:
        print(f"  {coin.object_id}  {coin.balance:,}")

    if total < config.gas_budget:
        print(f"Balance is below the configured gas budget ({config.gas_budget:,} MIST)")
        return 1
    return 0


def main() -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        config = build_config(args)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)

    setup_logging(config.log_level, config.log_json)

    try:
        if args.command == "run":
            sys.exit(asyncio.run(run_interaction(config, json_output=args.json)))
        elif args.command == "address":
            print(Keypair.from_config(config).address)
        elif args.command == "gas":
            sys.exit(asyncio.run(show_gas(config)))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)


if __name__ == "__main__":
    main()
