import requests
from typing import Dict, List, Optional
from config.config import Config
from app.utils.logger import get_logger

logger = get_logger(__name__)


class GoogleChatClient:
    """Wrapper for posting card messages to a Google Chat webhook"""

    def __init__(self, webhook_url: str = None, timeout: int = 10):
        self.webhook_url = webhook_url or Config.GOOGLE_CHAT_WEBHOOK_URL
        self.timeout = timeout

        if not self.webhook_url:
            logger.warning("Google Chat webhook URL not configured")

    def send_message(self, message: Dict) -> bool:
        """Post a message; returns False instead of raising"""
        if not self.webhook_url:
            return False

        try:
            response = requests.post(self.webhook_url, json=message, timeout=self.timeout)
            response.raise_for_status()
            return True
        except requests.exceptions.RequestException as e:
            logger.error(f"Google Chat webhook error: {str(e)}")
            return False

    def send_card(self, title: str, subtitle: str, fields: List[Dict[str, str]],
                  footer: Optional[str] = None) -> bool:
        """Send a single card made of key/value widgets"""
        widgets = [
            {'keyValue': {'topLabel': item['label'], 'content': item['value']}}
            for item in fields
        ]
        if footer:
            widgets.append({'textParagraph': {'text': footer}})

        message = {
            'cards': [{
                'header': {'title': title, 'subtitle': subtitle},
                'sections': [{'widgets': widgets}],
            }]
        }
        return self.send_message(message)
