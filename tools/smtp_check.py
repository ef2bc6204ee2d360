#!/usr/bin/env python3
"""
SMTP Check Tool
Verifies that the configured SMTP relay accepts a connection and the
configured credentials, without sending any email.

Exit codes: 0 when authentication succeeded, 2 otherwise.
"""

import sys
import os
import logging
import argparse
from dataclasses import replace

# Add the parent directory to the path to import the notifier package
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from notifier.config import MailRelayConfig, load_mail_relay_config
from notifier.email_service import EmailService
from notifier.errors import ConfigurationError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

IMPLICIT_TLS_PORT = 465


def try_dial(mail_config: MailRelayConfig) -> bool:
    """Connect and authenticate once with the given relay settings."""
    print(f"Dialing {mail_config.host}:{mail_config.port} (user={mail_config.username})")
    try:
        email_service = EmailService(mail_config)
    except ConfigurationError as e:
        print(f"✗ {e}")
        return False

    if email_service.test_smtp_connection():
        print("✓ Authentication OK (dial succeeded)")
        return True

    print("✗ Dial failed")
    return False


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Check SMTP relay connectivity and authentication")
    parser.add_argument(
        "--try465",
        action="store_true",
        help="also try implicit TLS on port 465 if the configured port fails"
    )
    args = parser.parse_args(argv)

    mail_config = load_mail_relay_config()
    print(f"Checking SMTP auth for {mail_config.username}@{mail_config.host}:{mail_config.port}")

    if try_dial(mail_config):
        return 0

    if args.try465:
        print(f"Trying fallback to port {IMPLICIT_TLS_PORT} (implicit TLS)")
        fallback = replace(mail_config, port=IMPLICIT_TLS_PORT, use_ssl=True, use_tls=False)
        if try_dial(fallback):
            return 0

    return 2


if __name__ == "__main__":
    sys.exit(main())
