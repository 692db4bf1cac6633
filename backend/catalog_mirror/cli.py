"""
Command line entry points.

    catalog-sync     run one full WooCommerce -> Supabase sync
    catalog-check    check both connections and exit

Exit codes: 0 ok, 1 failed, 2 missing configuration, 130 cancelled.
"""

import argparse
import logging
import signal
import sys
import threading
from typing import Optional

from dotenv import load_dotenv

from catalog_mirror.core.config import Settings, get_settings
from catalog_mirror.core.errors import CatalogMirrorError, ConfigurationError
from catalog_mirror.core.logging import configure_logging
from catalog_mirror.schemas.sync import ExitCode, SyncState
from catalog_mirror.services.db_service import CatalogStore
from catalog_mirror.services.ingestion.pipeline import CatalogSyncPipeline
from catalog_mirror.services.woocommerce_client import WooCommerceClient

logger = logging.getLogger("catalog_mirror.cli")

STATE_EXIT_CODES = {
    SyncState.COMPLETED: ExitCode.OK,
    SyncState.CANCELLED: ExitCode.CANCELLED,
}


def build_client(settings: Settings) -> WooCommerceClient:
    return WooCommerceClient(
        url=settings.WOOCOMMERCE_STORE_URL,
        consumer_key=settings.WOOCOMMERCE_CONSUMER_KEY,
        consumer_secret=settings.WOOCOMMERCE_CONSUMER_SECRET,
        timeout=settings.REQUEST_TIMEOUT,
    )


def build_pipeline(
    settings: Settings,
    cancel_event: Optional[threading.Event] = None,
) -> CatalogSyncPipeline:
    return CatalogSyncPipeline(
        client=build_client(settings),
        store=CatalogStore.from_settings(settings),
        products_page_size=settings.PRODUCTS_PAGE_SIZE,
        categories_page_size=settings.CATEGORIES_PAGE_SIZE,
        fetch_retries=settings.FETCH_RETRIES,
        fetch_retry_delay=settings.FETCH_RETRY_DELAY,
        cancel_event=cancel_event,
    )


def _load_settings(log_level: Optional[str]) -> Settings:
    load_dotenv()
    settings = get_settings()
    configure_logging(log_level or settings.LOG_LEVEL)
    missing = settings.missing()
    if missing:
        raise ConfigurationError(missing)
    return settings


def _parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--log-level", default=None, help="debug, info, warning, error")
    return parser


def sync_main(argv: Optional[list[str]] = None) -> int:
    args = _parser("Mirror the WooCommerce catalog into Supabase").parse_args(argv)

    try:
        settings = _load_settings(args.log_level)
    except ConfigurationError as e:
        logger.error("%s", e)
        return ExitCode.CONFIGURATION

    cancel_event = threading.Event()

    def _request_stop(signum, frame):
        logger.warning("Received signal %s, stopping after the current page", signum)
        cancel_event.set()

    previous_int = signal.signal(signal.SIGINT, _request_stop)
    previous_term = signal.signal(signal.SIGTERM, _request_stop)
    try:
        result = build_pipeline(settings, cancel_event).run()
    finally:
        signal.signal(signal.SIGINT, previous_int)
        signal.signal(signal.SIGTERM, previous_term)

    logger.info("Sync summary: %s", result.to_dict())
    return STATE_EXIT_CODES.get(result.state, ExitCode.FAILED)


def check_main(argv: Optional[list[str]] = None) -> int:
    args = _parser("Check the WooCommerce and Supabase connections").parse_args(argv)

    try:
        settings = _load_settings(args.log_level)
    except ConfigurationError as e:
        logger.error("%s", e)
        return ExitCode.CONFIGURATION

    ok = True

    logger.info("Connecting to WooCommerce at %s ...", settings.WOOCOMMERCE_STORE_URL)
    try:
        index = build_client(settings).ping()
        logger.info("WooCommerce OK (namespace=%s)", index.get("namespace", "wc/v3"))
    except CatalogMirrorError as e:
        ok = False
        logger.error("WooCommerce connection FAILED: %s", e)

    logger.info("Connecting to Supabase ...")
    try:
        CatalogStore.from_settings(settings).ping()
        logger.info("Supabase OK")
    except CatalogMirrorError as e:
        ok = False
        logger.error("Supabase connection FAILED: %s", e)

    return ExitCode.OK if ok else ExitCode.FAILED


def run_sync() -> None:
    sys.exit(sync_main())


def run_check() -> None:
    sys.exit(check_main())


if __name__ == "__main__":
    run_sync()
