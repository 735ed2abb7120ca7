"""
Background FX rate refresh using APScheduler.
Fetches the EUR-base rates once per day so the dashboard can read them from
the cache without waiting on the network.
"""

import time
import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from dotenv import load_dotenv

from config import get_settings
from db_engine import init_db
from services.fx import FxRateService

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def refresh_fx_rates(service: FxRateService = None) -> int:
    """
    Refresh every configured FX pair for today.
    Called by the scheduler once per day.

    Returns:
        Number of pairs refreshed
    """
    service = service or FxRateService()
    refreshed = service.refresh()
    if refreshed < len(service.pairs):
        logger.warning(f"FX refresh incomplete: {refreshed}/{len(service.pairs)} pairs updated")
    else:
        logger.info(f"FX refresh complete: {refreshed} pairs updated")
    return refreshed


def start_fx_scheduler() -> BackgroundScheduler:
    """
    Start the background scheduler for the daily FX refresh.

    Returns:
        Running BackgroundScheduler instance
    """
    settings = get_settings()
    scheduler = BackgroundScheduler()

    scheduler.add_job(
        refresh_fx_rates,
        trigger=CronTrigger(hour=settings.fx_refresh_hour, minute='0'),
        id='fx_refresh',
        name='FX Rate Refresh',
        replace_existing=True
    )

    logger.info("Running initial FX refresh on startup...")
    refresh_fx_rates()

    scheduler.start()
    logger.info(f"FX refresh scheduler started. Running daily at {settings.fx_refresh_hour:02d}:00.")

    return scheduler


if __name__ == "__main__":
    import sys

    init_db()

    if len(sys.argv) > 1 and sys.argv[1] == "--once":
        refresh_fx_rates()
    else:
        try:
            scheduler = start_fx_scheduler()
            print("\n" + "=" * 60)
            print("Strady FX refresh is running...")
            print("Press Ctrl+C to stop.")
            print("=" * 60 + "\n")

            while True:
                time.sleep(1)

        except (KeyboardInterrupt, SystemExit):
            logger.info("Shutting down FX refresh...")
            scheduler.shutdown()
            logger.info("FX refresh stopped.")
