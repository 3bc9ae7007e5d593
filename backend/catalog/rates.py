"""
USD to INR exchange rate

Fetched from EXCHANGE_RATE_URL (an open.er-api.com style JSON document with
`rates.INR`), cached for an hour. Implausible values and fetch errors fall
back to the fixed rate.
"""
from dataclasses import dataclass, asdict
import logging

import requests
from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from backend.core.cache_utils import EXCHANGE_RATE_CACHE_TTL

logger = logging.getLogger(__name__)

EXCHANGE_RATE_CACHE_KEY = 'exchange_rate:usd_inr'
MIN_PLAUSIBLE_RATE = 50
MAX_PLAUSIBLE_RATE = 100
REQUEST_TIMEOUT = 10


@dataclass
class ExchangeRate:
    rate: float
    source: str
    timestamp: str

    def to_dict(self):
        return asdict(self)


def _fallback(source='fallback'):
    return ExchangeRate(
        rate=float(getattr(settings, 'FALLBACK_USD_TO_INR', 83)),
        source=source,
        timestamp=timezone.now().isoformat(),
    )


def fetch_usd_to_inr_rate():
    """Fetch the live rate; raises requests.RequestException or ValueError"""
    url = getattr(settings, 'EXCHANGE_RATE_URL', '')
    response = requests.get(url, timeout=REQUEST_TIMEOUT)
    response.raise_for_status()
    payload = response.json()
    try:
        return float(payload['rates']['INR'])
    except (KeyError, TypeError) as e:
        raise ValueError(f"Exchange rate response has no INR rate: {e}")


def refresh_usd_to_inr_rate():
    """Fetch, validate and cache the rate. Never raises."""
    try:
        rate = fetch_usd_to_inr_rate()
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Could not fetch USD to INR exchange rate: {e}")
        return _fallback()

    if rate < MIN_PLAUSIBLE_RATE or rate > MAX_PLAUSIBLE_RATE:
        logger.warning(f"Exchange rate {rate} outside plausible range, using fallback")
        result = _fallback()
    else:
        result = ExchangeRate(rate=rate, source='live', timestamp=timezone.now().isoformat())
        logger.info(f"Fetched USD to INR exchange rate: {rate}")

    cache.set(EXCHANGE_RATE_CACHE_KEY, result.to_dict(), EXCHANGE_RATE_CACHE_TTL)
    return result


def get_usd_to_inr_rate(force_refresh=False):
    """Cached rate, refreshed when missing or when forced"""
    if not force_refresh:
        cached = cache.get(EXCHANGE_RATE_CACHE_KEY)
        if cached is not None:
            return ExchangeRate(**{**cached, 'source': 'cached'})
    return refresh_usd_to_inr_rate()
