"""Main service entry point."""
import sys
import json
import time
import signal
import argparse
from datetime import date
from decimal import Decimal

from moneylog import __version__
from moneylog.config.manager import ConfigManager, Config
from moneylog.config.settings import get_settings, AppSettings
from moneylog.reports.dispatcher import ReportDispatcher
from moneylog.stats.aggregator import Aggregator
from moneylog.stats.frequency import FREQUENCIES, previous_period
from moneylog.storage.repository import Repository
from moneylog.storage.seeder import seed_database
from moneylog.trips.rollup import TripRollupBuilder
from moneylog.utils.exceptions import MoneyLogError
from moneylog.utils.logger import get_logger, configure_logging

logger = get_logger()
shutdown_requested = False


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    global shutdown_requested
    logger.info(f"Received signal {signum}, initiating graceful shutdown...")
    shutdown_requested = True


def _json_default(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=_json_default))


def stats_command(repository: Repository, settings: AppSettings, args) -> None:
    """Print the income or expense aggregate of one user."""
    aggregator = Aggregator(settings.week_start_index)
    frequency = args.frequency or settings.default_frequency

    if args.direction == "incomes":
        transactions = repository.fetch_incomes(args.user, args.start, args.end)
        aggregate = aggregator.aggregate_incomes(transactions, args.start, args.end, frequency)
    else:
        transactions = repository.fetch_expenses(args.user, args.start, args.end)
        aggregate = aggregator.aggregate_expenses(transactions, args.start, args.end, frequency)

    _print_json({"stats": aggregate.to_dict()})


def trip_stats_command(repository: Repository, settings: AppSettings, args) -> None:
    """Print trip rollups, filtered when a range is given."""
    builder = TripRollupBuilder(settings.week_start_index)
    trips = repository.fetch_trips_with_expenses(args.user)

    if args.start or args.end or args.frequency:
        rollups = builder.rollup_trips_filtered(trips, args.start, args.end, args.frequency)
    else:
        rollups = builder.rollup_trips(trips)

    _print_json({"stats": [r.to_dict() for r in rollups]})


def save_report_command(repository: Repository, settings: AppSettings, args) -> None:
    """Store the current expense aggregate as a report snapshot."""
    aggregator = Aggregator(settings.week_start_index)
    expenses = repository.fetch_expenses(args.user, args.start, args.end)
    frequency = args.frequency or settings.default_frequency
    aggregate = aggregator.aggregate_expenses(expenses, args.start, args.end, frequency)
    report = repository.create_report(args.user, {"type": args.type, "stats": aggregate.to_dict()})
    print(f"✓ Saved {report.type} report #{report.id} ({aggregate.total_amount} total)")


def send_reports_command(dispatcher: ReportDispatcher, repository: Repository, settings: AppSettings, args) -> None:
    """Send summaries for an explicit range."""
    users = [repository.get_user(args.user)] if args.user else None
    frequency = args.frequency or settings.default_frequency
    results = dispatcher.dispatch_all(args.start, args.end, frequency, users)
    _print_results(results)


def list_deliveries_command(repository: Repository, user_id: int = None) -> None:
    """List logged deliveries for a user or for everyone."""
    records = repository.get_delivery_history(user_id)
    if not records:
        print("No deliveries found.")
        return

    print(f"\nTotal: {len(records)} deliveries")
    print(f"{'Status':<8} {'User':<6} {'Recipient':<32} {'Period':<22} {'Delivered At':<20}")
    print("-" * 92)
    for record in records:
        delivered_at = record.delivered_at.strftime('%Y-%m-%d %H:%M:%S') if record.delivered_at else ""
        print(
            f"{record.status:<8} {record.user_id:<6} {record.recipient:<32} "
            f"{record.period_key:<22} {delivered_at}"
        )


def clear_deliveries_command(repository: Repository, user_id: int = None) -> None:
    """Forget logged deliveries so their periods are sent again."""
    deleted = repository.clear_deliveries(user_id)
    if user_id:
        print(f"✓ Cleared {deleted} deliveries for user: {user_id}")
    else:
        print(f"✓ Cleared {deleted} deliveries (all users)")


def _print_results(results: list) -> None:
    for result in sorted(results, key=lambda r: r.user_id):
        status = "SENT" if result.sent else ("FAILED" if result.error else "SKIPPED")
        detail = result.error or result.reason
        print(f"{status:<8} {result.recipient:<32} {result.total_amount:>12.2f}  {detail}")


def _load_and_validate_config() -> Config:
    """Load and validate runtime configuration."""
    settings = get_settings()
    config_manager = ConfigManager(settings.config_path, settings.runtime_defaults())
    config = config_manager.load_config()

    if not config:
        logger.critical(f"No configuration found at {config_manager.config_file}")
        sys.exit(1)

    is_valid, message = config_manager.validate_config(config)
    if not is_valid:
        logger.critical(f"Invalid configuration: {message}")
        sys.exit(1)

    logger.info("Configuration loaded successfully")
    return config


def _build_dispatcher(repository: Repository, settings: AppSettings, config: Config) -> ReportDispatcher:
    """Dispatcher creating one Gmail client per worker call."""
    from moneylog.reports.mailer import GmailMailer

    def mailer_factory():
        return GmailMailer(
            sender=config.sender_email,
            service_account_path=config.service_account_path,
            oauth_client_secrets=config.oauth_client_secrets,
            oauth_token_path=config.oauth_token_path,
            scopes=settings.google_api_scopes
        )

    return ReportDispatcher(
        repository,
        mailer_factory,
        max_workers=config.max_concurrent_users,
        week_start=settings.week_start_index,
        subject_prefix=settings.subject_prefix
    )


def _run_report_loop(dispatcher: ReportDispatcher, config: Config, settings: AppSettings) -> None:
    """Run the periodic report loop."""
    cycle_count = 0

    logger.info(
        f"Service initialized. Sending {config.report_frequency} reports, "
        f"checking every {config.polling_interval_minutes} minutes"
    )

    while not shutdown_requested:
        cycle_count += 1
        logger.info(f"=== Report cycle #{cycle_count} ===")

        try:
            start, end = previous_period(config.report_frequency, date.today(), settings.week_start_index)
            results = dispatcher.dispatch_period(start, end, config.report_frequency)
            _log_cycle_results(cycle_count, results)
        except Exception as e:
            logger.error(f"Error in report cycle: {e}")

        logger.info(f"Heartbeat: Service is running (cycle #{cycle_count})")
        _wait_for_next_cycle(config.polling_interval_minutes)

    logger.info("Service stopped gracefully")


def _log_cycle_results(cycle_count: int, results: list) -> None:
    """Log summary of a report cycle."""
    sent = sum(1 for r in results if r.sent)
    failed = sum(1 for r in results if r.error)
    skipped = len(results) - sent - failed

    logger.info(
        f"Cycle #{cycle_count} complete: "
        f"{len(results)} users, "
        f"{sent} sent, "
        f"{skipped} skipped, "
        f"{failed} failed"
    )


def _wait_for_next_cycle(interval_minutes: int) -> None:
    """Wait for next cycle with graceful shutdown support."""
    wait_seconds = interval_minutes * 60
    logger.debug(f"Waiting {wait_seconds}s until next cycle...")

    for _ in range(wait_seconds):
        if shutdown_requested:
            break
        time.sleep(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="MoneyLog personal finance statistics")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Run the periodic report service (default)")
    subparsers.add_parser("seed", help="Insert demo users and transactions")

    send = subparsers.add_parser("send-reports", help="Email summaries for a date range")
    send.add_argument("--start", required=True, help="First day (YYYY-MM-DD)")
    send.add_argument("--end", required=True, help="Last day (YYYY-MM-DD)")
    send.add_argument("--frequency", help=f"Bucket size: {', '.join(FREQUENCIES)} (default from settings)")
    send.add_argument("--user", type=int, help="Only this user id")

    stats = subparsers.add_parser("stats", help="Print income or expense statistics")
    stats.add_argument("direction", choices=["expenses", "incomes"])
    stats.add_argument("--user", type=int, required=True)
    stats.add_argument("--start")
    stats.add_argument("--end")
    stats.add_argument("--frequency", help="Bucket size (default from settings)")

    trips = subparsers.add_parser("trip-stats", help="Print per-trip statistics")
    trips.add_argument("--user", type=int, required=True)
    trips.add_argument("--start")
    trips.add_argument("--end")
    trips.add_argument("--frequency")

    save = subparsers.add_parser("save-report", help="Store an expense summary snapshot")
    save.add_argument("--user", type=int, required=True)
    save.add_argument("--type", required=True, choices=["weekly", "monthly", "yearly", "trip"])
    save.add_argument("--start")
    save.add_argument("--end")
    save.add_argument("--frequency", help="Bucket size (default from settings)")

    for name, help_text in (("list-deliveries", "List sent reports"), ("clear-deliveries", "Forget sent reports")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--user", type=int, help="User id")

    return parser


def main(argv=None):
    """Main entry point for MoneyLog."""
    args = build_parser().parse_args(argv)
    command = args.command or "run"

    try:
        settings = get_settings()
        configure_logging(settings.log_level, settings.log_max_file_size_mb, settings.log_backup_count)
        repository = Repository(settings.database_path)

        if command == "seed":
            users = seed_database(repository)
            print(f"✓ Seeded {len(users)} users")
            return
        if command == "stats":
            stats_command(repository, settings, args)
            return
        if command == "trip-stats":
            trip_stats_command(repository, settings, args)
            return
        if command == "save-report":
            save_report_command(repository, settings, args)
            return
        if command == "list-deliveries":
            list_deliveries_command(repository, args.user)
            return
        if command == "clear-deliveries":
            clear_deliveries_command(repository, args.user)
            return

        config = _load_and_validate_config()
        configure_logging(config.log_level, settings.log_max_file_size_mb, settings.log_backup_count)
        dispatcher = _build_dispatcher(repository, settings, config)

        if command == "send-reports":
            send_reports_command(dispatcher, repository, settings, args)
            return

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

        logger.info(f"{settings.app_name} v{settings.app_version} service starting...")
        _run_report_loop(dispatcher, config, settings)
    except MoneyLogError as e:
        logger.error(str(e))
        sys.exit(2)
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.critical(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
