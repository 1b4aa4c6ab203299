from datetime import datetime, time, timedelta
from typing import Dict, Optional
from sqlalchemy import func
from config.config import Config
from app.database import DatabaseManager, get_db
from app.models import ApiUsageLog
from app.models.usage_log import UsageEndpoint
from app.services.notification_service import NotificationService
from app.utils.logger import get_logger
from app.utils.timeutils import JST, ensure_aware, to_db_datetime, utcnow

logger = get_logger(__name__)

ENDPOINT_STAT_KEYS = {
    UsageEndpoint.AVAILABILITY: 'availabilityRequests',
    UsageEndpoint.BOOKING_CREATE: 'bookingRequests',
    UsageEndpoint.BOOKING_CANCEL: 'cancelRequests',
}


def month_bounds(now: datetime):
    """[start, end) of the JST calendar month containing ``now``, as naive UTC"""
    local = ensure_aware(now).astimezone(JST)
    start = datetime.combine(local.date().replace(day=1), time(0, 0), tzinfo=JST)
    next_month = (start.replace(day=28) + timedelta(days=4)).replace(day=1)
    return to_db_datetime(start), to_db_datetime(next_month)


class UsageService:
    """Append-only API usage accounting and threshold alerts"""

    def __init__(self, rate_limiter=None, notification_service: NotificationService = None,
                 threshold: int = None):
        self.usage_db = DatabaseManager(ApiUsageLog)
        self.rate_limiter = rate_limiter
        self.notification_service = notification_service or NotificationService()
        self.threshold = threshold or Config.USAGE_ALERT_THRESHOLD

    def log_usage(self, endpoint: str, request_count: int, member_id: Optional[str] = None):
        """Record external API calls and invalidate the cached monthly total"""
        self.usage_db.create(endpoint=endpoint, member_id=member_id, request_count=request_count)
        if self.rate_limiter:
            self.rate_limiter.invalidate_monthly_cache()

    def get_monthly_total(self, now: datetime = None) -> int:
        """Total request_count for the current month"""
        month_start, month_end = month_bounds(now or utcnow())
        with get_db() as db:
            total = db.query(func.sum(ApiUsageLog.request_count)).filter(
                ApiUsageLog.created_at >= month_start,
                ApiUsageLog.created_at < month_end
            ).scalar()
        return int(total or 0)

    def get_monthly_usage_stats(self, now: datetime = None) -> Dict[str, int]:
        """Per-endpoint totals for the current month"""
        month_start, month_end = month_bounds(now or utcnow())
        stats = {
            'totalRequests': 0,
            'availabilityRequests': 0,
            'bookingRequests': 0,
            'cancelRequests': 0,
        }

        with get_db() as db:
            rows = db.query(ApiUsageLog.endpoint, func.sum(ApiUsageLog.request_count)).filter(
                ApiUsageLog.created_at >= month_start,
                ApiUsageLog.created_at < month_end
            ).group_by(ApiUsageLog.endpoint).all()

        for endpoint, count in rows:
            count = int(count or 0)
            stats['totalRequests'] += count
            key = ENDPOINT_STAT_KEYS.get(endpoint)
            if key:
                stats[key] += count

        return stats

    def check_and_alert_usage(self) -> Dict:
        """Alert operators once usage reaches the configured percentage"""
        stats = self.get_monthly_usage_stats()
        percent_used = (stats['totalRequests'] / self.threshold) * 100

        alerted = False
        if percent_used >= Config.USAGE_ALERT_PERCENT:
            logger.warning(f"API usage at {percent_used:.1f}% of monthly threshold")
            alerted = self.notification_service.send_usage_alert(
                stats['totalRequests'], self.threshold, percent_used
            )

        return {
            'alerted': alerted,
            'percentUsed': percent_used,
            'stats': stats,
            'threshold': self.threshold,
        }

    def send_daily_report(self) -> bool:
        stats = self.get_monthly_usage_stats()
        today = utcnow().astimezone(JST)
        return self.notification_service.send_daily_report(
            stats, f'{today.year}年{today.month}月{today.day}日'
        )
