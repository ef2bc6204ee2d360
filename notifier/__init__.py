# notifier/__init__.py
"""
Email notification service driven by RabbitMQ events.
"""

__version__ = "0.1.0"
