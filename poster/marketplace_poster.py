import argparse
import asyncio
import os
import sys

from .config import Config
from .core import build_orchestrator
from .errors import SheetStructureError
from .export import save_run_report
from .images import ImagePipeline
from .models import LoopPhase
from .queue_loop import QueueLoop
from .sheets import SheetsGateway
from .utils import init_logger, mask_email, now_iso

logger = None


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Post Facebook Marketplace listings from a Google Sheet queue")
    ap.add_argument("--spreadsheet-id", type=str, required=True, help="Google Sheets spreadsheet id")
    ap.add_argument("--validate-only", action="store_true", help="Check the sheet header and pending rows, then exit")
    ap.add_argument("--no-remote", action="store_true", help="Skip the remote browser and use local Chromium only")
    ap.add_argument("--headful", action="store_true", help="Show the local browser window")
    ap.add_argument("--delay-min", type=float, default=None, help="Minimum seconds between rows (default from AUTOMATION_DELAY_MIN)")
    ap.add_argument("--delay-max", type=float, default=None, help="Maximum seconds between rows (default from AUTOMATION_DELAY_MAX)")
    ap.add_argument("--selectors", type=str, default=None, help="JSON file overriding locator lists")
    ap.add_argument("--out", type=str, default="", help="CSV/XLSX run report")
    # Logging
    lvl_choices = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    ap.add_argument("--log-level", choices=lvl_choices, default=None,
                    help="Global log level for both console and file (overrides --log-console/--log-file).")
    ap.add_argument("--log-console", choices=lvl_choices, default=os.getenv("LOG_CONSOLE", "INFO"),
                    help="Console log level (default from env LOG_CONSOLE or INFO).")
    ap.add_argument("--log-file", choices=lvl_choices, default=os.getenv("LOG_FILE", "DEBUG"),
                    help="File log level (default from env LOG_FILE or DEBUG).")
    ap.add_argument("--log-file-path", default=os.getenv("LOG_FILE_PATH", "poster.log"),
                    help="Path to log file (default from env LOG_FILE_PATH or poster.log).")
    ap.add_argument("--no-file-log", action="store_true",
                    help="Disable file logging (only console output).")
    return ap.parse_args(argv)


def resolve_delay_range(args, cfg=Config) -> tuple:
    low, high = cfg.delay_range_seconds()
    if args.delay_min is not None:
        low = max(0.0, args.delay_min)
    if args.delay_max is not None:
        high = max(0.0, args.delay_max)
    return (low, high) if low <= high else (high, low)


def missing_settings(args, cfg=Config) -> list:
    missing = cfg.validate()
    if args.no_remote:
        missing = [m for m in missing if not m.startswith("BROWSERBASE")]
    return missing


def make_gateway(cfg=Config) -> SheetsGateway:
    return SheetsGateway(
        credentials_file=cfg.GOOGLE_CREDENTIALS_FILE,
        service_account_info=cfg.google_service_account_info(),
    )


async def validate_sheet(gateway: SheetsGateway, spreadsheet_id: str) -> bool:
    ok = await gateway.validate_sheet_structure(spreadsheet_id)
    pending = await gateway.get_pending_rows(spreadsheet_id)
    logger.info(f">>> Sheet structure {'OK' if ok else 'INVALID'}, {len(pending)} rows ready to post")
    for row in pending:
        logger.info(f"    row {row.row_number}: {row.item_name} ({row.price})")
    return ok


async def run_queue(args) -> QueueLoop:
    gateway = make_gateway()
    queue = QueueLoop(
        gateway=gateway,
        orchestrator_factory=lambda: build_orchestrator(
            use_remote=False if args.no_remote else None,
            headless=False if args.headful else None,
            selectors_file=args.selectors,
        ),
        credentials=Config.credentials(),
        delay_range=resolve_delay_range(args),
    )
    await gateway.ensure_sheet_structure(args.spreadsheet_id)
    await queue.run_to_completion(args.spreadsheet_id)
    return queue


def main(argv=None) -> int:
    args = parse_args(argv)
    eff_console = args.log_level or args.log_console
    eff_file = args.log_level or args.log_file
    global logger
    logger = init_logger(
        console_level=eff_console,
        file_level=eff_file,
        log_file=None if args.no_file_log else args.log_file_path
    )
    logger.info(
        f"Logger initialized: console={eff_console}, "
        f"file={'DISABLED' if args.no_file_log else eff_file}, "
        f"path={'N/A' if args.no_file_log else args.log_file_path}"
    )
    logger.info(f">>> Run started at {now_iso()}")

    if args.validate_only:
        ok = asyncio.run(validate_sheet(make_gateway(), args.spreadsheet_id))
        return 0 if ok else 1

    missing = missing_settings(args)
    if missing:
        logger.error(f"Missing required settings: {', '.join(missing)}")
        return 2

    logger.info(f">>> Posting as {mask_email(Config.FACEBOOK_EMAIL)}")
    ImagePipeline(upload_dir=Config.UPLOAD_DIR).cleanup_processed()

    try:
        queue = asyncio.run(run_queue(args))
    except SheetStructureError as e:
        logger.error(f"Refusing to process sheet {args.spreadsheet_id}: {e}")
        return 1
    stats = queue.state.stats()
    logger.info(
        f">>> Run finished ({queue.state.phase.value}): "
        f"processed={stats['processed_count']}, failed={stats['failed_count']}"
    )

    if args.out:
        save_run_report(queue.history, args.out, logger=logger)

    return 0 if queue.state.phase != LoopPhase.IDLE else 1


if __name__ == "__main__":
    sys.exit(main())
