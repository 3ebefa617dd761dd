# services/exchange_rate_service.py
import logging

import requests

logger = logging.getLogger(__name__)

EXCHANGE_RATE_URL = "https://api.exchangerate-api.com/v4/latest/JPY"
FALLBACK_JPY_TO_LKR_RATE = 1.9775
REQUEST_TIMEOUT_SECONDS = 5


def fetch_jpy_to_lkr_rate(timeout: float = REQUEST_TIMEOUT_SECONDS) -> float:
    """
    Looks up today's JPY->LKR rate. Any failure, or a rate outside the sane
    0-10 window, returns the fallback constant. The result only seeds the
    rate field; users can always overwrite it.
    """
    try:
        response = requests.get(EXCHANGE_RATE_URL, timeout=timeout, headers={"Cache-Control": "no-store"})
        response.raise_for_status()
        data = response.json()
        rate = float(data["rates"]["LKR"])
        if 0 < rate < 10:
            return rate
        logger.warning("Exchange rate API returned out-of-range JPY->LKR rate %s", rate)
    except requests.exceptions.RequestException as e:
        logger.warning("Exchange rate API not available: %s", e)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Unexpected exchange rate payload: %s", e)

    logger.warning("Using fallback JPY->LKR rate %s", FALLBACK_JPY_TO_LKR_RATE)
    return FALLBACK_JPY_TO_LKR_RATE
