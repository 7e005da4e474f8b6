"""
Sentry Error Monitoring Configuration
Error tracking for the contract risk scorer
"""
import logging
import os

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from infrastructure.config import get_config

logger = logging.getLogger("Sentry")

SENSITIVE_KEYS = ['api_key', 'apikey', 'secret', 'password', 'token', 'dsn']


def filter_sensitive_data(event, hint):
    """Remove API keys and secrets from Sentry events."""
    # Filter request body and query string
    request = event.get('request') or {}
    data = request.get('data')
    if isinstance(data, dict):
        for key in list(data):
            if any(s in key.lower() for s in SENSITIVE_KEYS):
                data[key] = '[FILTERED]'

    query = request.get('query_string')
    if isinstance(query, str) and 'apikey' in query.lower():
        request['query_string'] = '[FILTERED]'

    # Explorer URLs carry the API key in the query string
    if 'exception' in event and 'values' in event['exception']:
        for exc in event['exception']['values']:
            value = exc.get('value') or ''
            if any(s in value.lower() for s in SENSITIVE_KEYS):
                exc['value'] = '[FILTERED - sensitive data]'

    return event


def init_sentry() -> bool:
    """Initialize Sentry when SENTRY_DSN is configured."""
    cfg = get_config()
    dsn = cfg.monitoring.sentry_dsn

    if not dsn:
        logger.info("No SENTRY_DSN found - error tracking disabled")
        return False

    release = os.getenv("COMMIT_SHA", "local")

    sentry_sdk.init(
        dsn=dsn,
        environment=cfg.environment.value,

        traces_sample_rate=0.2,

        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(),
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.ERROR
            ),
        ],

        before_send=filter_sensitive_data,
        send_default_pii=False,
        release=f"contract-risk-scorer@{release}",

        # Upstream outages are reported as degraded results, not errors
        ignore_errors=[
            ConnectionRefusedError,
            TimeoutError,
        ],
    )

    logger.info(f"✓ Sentry initialized for {cfg.environment.value} (release: {release[:8]})")
    return True


def capture_analysis_context(address: str, chain: str, scan_depth: str):
    """Tag the current scope with the contract being analyzed."""
    sentry_sdk.set_tag("chain", chain)
    sentry_sdk.set_tag("scan_depth", scan_depth)
    sentry_sdk.set_context("contract", {"address": address, "chain": chain})
