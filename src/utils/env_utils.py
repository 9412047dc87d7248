# src/utils/env_utils.py
import logging
import os
from pathlib import Path
from urllib.parse import urlparse

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

base_dir = Path(__file__).parent.parent.parent

DEFAULT_API_URI = "https://localhost:5001/"
LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "::1"}

# Key -> default. None means "no default, may stay unset".
ENV_DEFAULTS = {
    'API_URI': DEFAULT_API_URI,
    'BEARER_TOKEN': None,
    'USER_EMAIL': None,
    'USER_PASSWORD': None,

    'POLL_INTERVAL_MS': '100',
    'LOAD_TIMEOUT_SECONDS': '1800',
    'INDEX_TIMEOUT_SECONDS': '1800',
    'REQUEST_TIMEOUT_SECONDS': '300',

    'LOG_LEVEL': 'INFO',
}

INT_KEYS = {'POLL_INTERVAL_MS'}
FLOAT_KEYS = {'LOAD_TIMEOUT_SECONDS', 'INDEX_TIMEOUT_SECONDS', 'REQUEST_TIMEOUT_SECONDS'}
SECRET_KEYS = {'BEARER_TOKEN', 'USER_PASSWORD'}
LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}


class ConfigurationError(ValueError):
    """Raised when the environment does not describe a usable run."""


def load_env_files(directory: Path = base_dir) -> None:
    """Load .env.local first, then .env. Real environment variables always win."""
    for name in (".env.local", ".env"):
        env_path = directory / name
        if env_path.exists():
            load_dotenv(dotenv_path=env_path, override=False)
            logger.debug(f"Loaded environment file {env_path}")


def validate_env_value(key: str, value: str) -> bool:
    """
    Validate environment variable value based on key type.
    Returns True if valid, False otherwise.
    """
    if not value or value.isspace():
        return False

    if key in INT_KEYS:
        try:
            if int(value) <= 0:
                logger.error(f"{key} should be a positive integer")
                return False
        except ValueError:
            logger.error(f"{key} should be an integer")
            return False

    elif key in FLOAT_KEYS:
        try:
            if float(value) < 0:
                logger.error(f"{key} should not be negative")
                return False
        except ValueError:
            logger.error(f"{key} should be a number")
            return False

    elif key == 'LOG_LEVEL' and value.upper() not in LOG_LEVELS:
        logger.error(f"{key} should be one of {sorted(LOG_LEVELS)}")
        return False

    elif key == 'API_URI':
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            logger.error(f"{key} should be an http(s) URL")
            return False

    return True


def get_env_config() -> dict:
    """Collect the known keys from the environment, falling back to defaults."""
    env_dict = {}
    for key, default in ENV_DEFAULTS.items():
        value = os.getenv(key)
        if value is None or value.strip() == "":
            value = default
        if value is not None:
            env_dict[key] = value.strip()
    return env_dict


def _mask(key: str, value: str) -> str:
    if key in SECRET_KEYS:
        return '***HIDDEN***'
    return value


def check_env_vars(env_dict: dict) -> bool:
    """
    Validate every configured value and the credential combination.
    Returns True if all valid, False if any invalid.
    """
    logger.debug("🔍 Checking environment variables...")
    all_valid = True

    for key, value in env_dict.items():
        if validate_env_value(key, value):
            logger.debug(f"✅ {key}: {_mask(key, value)} [PASS]")
        else:
            logger.error(f"❌ {key}: [INVALID]")
            all_valid = False

    has_token = bool(env_dict.get('BEARER_TOKEN'))
    has_login = bool(env_dict.get('USER_EMAIL')) and bool(env_dict.get('USER_PASSWORD'))
    if not has_token and not has_login:
        logger.error("❌ No authentication credentials provided")
        logger.error("   Set BEARER_TOKEN or USER_EMAIL and USER_PASSWORD in .env.local")
        all_valid = False

    return all_valid


def is_loopback_url(url: str) -> bool:
    return (urlparse(url).hostname or "").lower() in LOOPBACK_HOSTS


def _timeout_or_none(value: str):
    seconds = float(value)
    return seconds if seconds > 0 else None


def get_config() -> dict:
    """
    Get validated configuration for a loader run.
    Raises ConfigurationError if any value is invalid or no credentials are configured.
    """
    load_env_files()
    env_dict = get_env_config()
    if not check_env_vars(env_dict):
        raise ConfigurationError("Environment configuration is invalid!")

    api_uri = env_dict['API_URI']
    if not api_uri.endswith('/'):
        api_uri += '/'

    bearer_token = env_dict.get('BEARER_TOKEN')
    return {
        'api': {
            'uri': api_uri,
            'verify_ssl': not is_loopback_url(api_uri),
        },
        # Bearer token takes precedence over email/password
        'auth': {
            'bearer_token': bearer_token,
            'email': None if bearer_token else env_dict.get('USER_EMAIL'),
            'password': None if bearer_token else env_dict.get('USER_PASSWORD'),
        },
        'polling': {
            'interval_seconds': int(env_dict['POLL_INTERVAL_MS']) / 1000.0,
            'load_timeout_seconds': _timeout_or_none(env_dict['LOAD_TIMEOUT_SECONDS']),
            'index_timeout_seconds': _timeout_or_none(env_dict['INDEX_TIMEOUT_SECONDS']),
        },
        'http': {
            'timeout_seconds': _timeout_or_none(env_dict['REQUEST_TIMEOUT_SECONDS']),
        },
        'log_level': env_dict['LOG_LEVEL'].upper(),
    }
