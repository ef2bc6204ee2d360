# notifier/main.py
"""
Notifier Service - Auction Email Notification Service

This service consumes notification events from the RabbitMQ `events` topic
exchange and sends a plain-text email for each one through an authenticated
SMTP relay.

Features:
- Durable queue and topic exchange bindings declared on every startup
- Auto-acknowledged, strictly sequential message handling
- Per-message fault isolation: failures are logged and the message dropped
- Masked credential logging with an opt-in DEBUG_SHOW_SECRETS switch
- Graceful shutdown on SIGINT / SIGTERM
"""

from notifier.service import run

if __name__ == "__main__":
    run()
