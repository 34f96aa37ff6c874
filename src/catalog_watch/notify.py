import requests

from .errors import DeliveryFailure

UA = {"User-Agent": "CatalogWatch/1.0"}


class WebhookNotifier:
    """Posts {"content": text} to a Discord-style webhook. No retries."""

    def __init__(self, webhook_url, timeout=15, session=None):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.session = session or requests

    def __call__(self, content):
        self.send(content)

    def send(self, content):
        if not self.webhook_url:
            raise DeliveryFailure("no webhook URL configured (DISCORD_WEBHOOK_URL)")
        try:
            r = self.session.post(self.webhook_url, json={"content": content}, timeout=self.timeout, headers=UA)
            r.raise_for_status()
        except requests.RequestException as e:
            raise DeliveryFailure(f"webhook post failed: {e}") from e


class StdoutNotifier:
    """Dry-run sink: prints each segment instead of posting it."""

    def __init__(self, stream=None):
        self.stream = stream

    def __call__(self, content):
        print(content, file=self.stream)
        print("-" * 40, file=self.stream)
