#!/usr/bin/env python3
"""
Scheduler for API usage monitoring
Runs the usage threshold check hourly and posts the daily report at 09:00 JST.
Start it alongside the web process: python scripts/run_usage_cron.py
"""

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from app.database import init_db
from app.services.usage_service import UsageService
from app.utils.logger import get_logger
from config.config import Config

logger = get_logger('usage_cron')


def run_usage_check():
    """Hourly threshold check"""
    try:
        result = UsageService().check_and_alert_usage()
        logger.info(f"Usage check: {result['percentUsed']:.1f}% used (alerted={result['alerted']})")
    except Exception as e:
        logger.error(f"Error in usage check: {str(e)}")


def run_daily_report():
    """Daily usage summary"""
    try:
        UsageService().send_daily_report()
    except Exception as e:
        logger.error(f"Error sending daily report: {str(e)}")


def main():
    init_db()

    scheduler = BlockingScheduler(timezone=Config.TIMEZONE)
    scheduler.add_job(run_usage_check, CronTrigger(minute=0, timezone=Config.TIMEZONE), id='usage_check')
    scheduler.add_job(run_daily_report, CronTrigger(hour=9, minute=0, timezone=Config.TIMEZONE), id='daily_report')

    logger.info("Starting usage cron scheduler")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Usage cron scheduler stopped")


if __name__ == "__main__":
    main()
