# main.py
import argparse
import asyncio
import sys

import questionary
from rich.console import Console

from arb_scanner.api import run_server
from arb_scanner.config import DEFAULT_CONFIG_PATH, ScannerConfig, load_config
from arb_scanner.dashboard import opportunities_table
from arb_scanner.errors import ConfigError, FatalRunError, StorageError
from arb_scanner.logger import OpportunityAuditLog, setup_console_logger
from arb_scanner.market_engine import MarketEngine
from arb_scanner.models import Category
from arb_scanner.scanner import ArbitrageScanner
from arb_scanner.storage import OpportunityRepository


def startup_selection(config: ScannerConfig) -> ScannerConfig:
    """Interactive CLI to pick which configured exchanges to scan."""
    avail_exchanges = [ex.name for ex in config.enabled_exchanges]
    exchanges = questionary.checkbox("Select Exchanges to Scan:", choices=avail_exchanges).ask()
    if not exchanges or len(exchanges) < 2:
        raise ConfigError("need at least 2 exchanges for arbitrage")
    return config.with_exchanges(exchanges)


async def run_scan(config: ScannerConfig, start, end) -> int:
    logger = setup_console_logger("arb_scanner", config.system.log_level)
    console = Console()

    engine = MarketEngine(config, logger)
    audit_log = OpportunityAuditLog(config.storage.audit_log)
    try:
        sources = await engine.initialize()
        await audit_log.start()
        scanner = ArbitrageScanner(
            config.arbitrage,
            sources,
            OpportunityRepository(config.storage.database),
            audit_log=audit_log,
            console=console,
            logger=logger,
        )
        await scanner.run(start, end)
        return 0
    finally:
        console.print("Shutting down resources...")
        await audit_log.stop()
        await engine.shutdown()


async def run_report(config: ScannerConfig):
    console = Console()
    repository = OpportunityRepository(config.storage.database)
    console.print(f"Reading data from the database at: {repository.path}")
    executable = await repository.get_opportunities(Category.EXECUTABLE)
    potential = await repository.get_opportunities(Category.POTENTIAL)
    console.print(opportunities_table("✅ Executable Opportunities", executable))
    console.print(opportunities_table("⚠️ Potential Opportunities", potential))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cross-exchange arbitrage scanner")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="path to config.yaml")
    sub = parser.add_subparsers(dest="command")

    scan = sub.add_parser("scan", help="run one detection pass and store the results")
    scan.add_argument("--select", action="store_true", help="pick exchanges interactively")
    scan.add_argument("--start", type=int, default=None, help="first shared-pair index to analyze")
    scan.add_argument("--end", type=int, default=None, help="shared-pair index to stop before")

    sub.add_parser("serve", help="serve the stored opportunities over HTTP")
    sub.add_parser("report", help="print the stored opportunities")
    return parser


def cli(argv=None) -> int:
    args = build_parser().parse_args(argv)
    command = args.command or "scan"

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    if command == "serve":
        logger = setup_console_logger("arb_scanner", config.system.log_level)
        run_server(OpportunityRepository(config.storage.database), config.api.host, config.api.port, logger)
        return 0

    try:
        if command == "report":
            asyncio.run(run_report(config))
            return 0

        if getattr(args, "select", False):
            config = startup_selection(config)
        return asyncio.run(run_scan(config, getattr(args, "start", None), getattr(args, "end", None)))
    except KeyboardInterrupt:
        print("\n🛑 Scan Stopped by User.")
        return 130
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except (FatalRunError, StorageError) as e:
        setup_console_logger("arb_scanner", config.system.log_level).critical(f"Fatal error during execution: {e}")
        return 1


def main():
    try:
        import uvloop
        asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
    except ImportError:
        pass
    sys.exit(cli())


if __name__ == "__main__":
    main()
