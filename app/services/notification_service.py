from typing import Dict
from app.integrations import GoogleChatClient
from app.utils.logger import get_logger

logger = get_logger(__name__)

APP_NAME = 'MeetFlow'


class NotificationService:
    """Operator notifications (Google Chat)"""

    def __init__(self, chat_client: GoogleChatClient = None):
        self.chat = chat_client or GoogleChatClient()

    def send_usage_alert(self, total_requests: int, threshold: int, percent_used: float) -> bool:
        """Warn operators that monthly API usage is close to the ceiling"""
        sent = self.chat.send_card(
            title='⚠️ API使用量アラート',
            subtitle=f'{APP_NAME} - 使用量が閾値に近づいています',
            fields=[
                {'label': '現在の使用量', 'value': f'{total_requests:,} リクエスト'},
                {'label': '閾値', 'value': f'{threshold:,} リクエスト'},
                {'label': '使用率', 'value': f'{percent_used:.1f}%'},
            ],
        )
        if sent:
            logger.info(f"Sent usage alert at {percent_used:.1f}%")
        return sent

    def send_daily_report(self, stats: Dict, date_text: str) -> bool:
        """Post the daily usage summary"""
        sent = self.chat.send_card(
            title='📊 日次レポート',
            subtitle=f'{APP_NAME} - {date_text}',
            fields=[
                {'label': '今月の合計', 'value': f"{stats['totalRequests']:,} リクエスト"},
                {'label': '空き状況の取得', 'value': f"{stats['availabilityRequests']:,}"},
                {'label': '予約作成', 'value': f"{stats['bookingRequests']:,}"},
                {'label': '予約キャンセル', 'value': f"{stats['cancelRequests']:,}"},
            ],
        )
        if sent:
            logger.info(f"Sent daily usage report for {date_text}")
        return sent
