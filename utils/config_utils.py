# utils/config_utils.py
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable

import streamlit as st

logger = logging.getLogger(__name__)

# Places where Streamlit looks for secrets.toml
SECRETS_PATHS = (
    Path.cwd() / ".streamlit" / "secrets.toml",
    Path.home() / ".streamlit" / "secrets.toml",
)

APP_DEFAULTS = {
    "INVOICE_PREFIX": "INV",
    "COMPANY_NAME": "R.S.Enterprises",
    "COMPANY_ADDRESS": "No.164/B,Nittambuwa Road,Paththalagedara,Veyangoda",
    "COMPANY_PHONE": "0773073156,0332245886",
    "COMPANY_EMAIL": "rsenterprises59@gmail.com",
    "INVOICE_TEMPLATE_PATH": "templates/invoice_blank.png",
}


def _secrets_available() -> bool:
    return any(path.exists() for path in SECRETS_PATHS)


def get_section(name: str, keys: Iterable[str] = ()) -> Dict[str, Any]:
    """
    Returns a secrets section as a plain dict, with environment variables of
    the same key names layered on top.
    """
    values: Dict[str, Any] = {}
    if _secrets_available():
        try:
            section = st.secrets.get(name)
            if section:
                values.update(dict(section))
        except Exception as e:
            logger.warning("Could not read [%s] from Streamlit secrets: %s", name, e)

    for key in set(values.keys()) | set(keys):
        env_value = os.getenv(key)
        if env_value:
            values[key] = env_value
    return values


def get_setting(key: str, default: Any = None, section: str = "app") -> Any:
    """Env var first, then [section] in secrets, then built-in defaults."""
    env_value = os.getenv(key)
    if env_value:
        return env_value.strip()

    value = get_section(section).get(key)
    if value not in (None, ""):
        return value

    if default is not None:
        return default
    return APP_DEFAULTS.get(key)
