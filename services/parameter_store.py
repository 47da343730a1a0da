"""
Configuration from AWS Systems Manager Parameter Store.

Deployed functions read their settings from Parameter Store under the
``/e-stock`` prefix; local development sets the same values as environment
variables, optionally through a ``.env`` file loaded with python-dotenv.
"""

import os
from functools import lru_cache
from typing import Any, Dict, List

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv

from utils.logging import setup_logger

logger = setup_logger(__name__)

# Load .env file for local development
load_dotenv()

DEFAULT_PREFIX = "/e-stock"
DEFAULT_BRAND_NAME = "E-Stock"
DEFAULT_RESET_CONTINUE_URL = "/login_main.html"
DEFAULT_EXPORT_ENGINES = ("openpyxl", "xlsxwriter")

_ssm_client = None


def get_ssm_client():
    """Get or create SSM client with caching."""
    global _ssm_client
    if _ssm_client is None:
        _ssm_client = boto3.client("ssm")
    return _ssm_client


def env_var_name(parameter_name: str) -> str:
    """``/e-stock/mail/from`` -> ``E_STOCK_MAIL_FROM``."""
    return parameter_name.replace("/", "_").replace("-", "_").strip("_").upper()


@lru_cache(maxsize=128)
def get_parameter(parameter_name: str, decrypt: bool = True) -> str | None:
    """
    Get a parameter from AWS Parameter Store with caching.

    The environment variable form of the name wins when it is set.

    Args:
        parameter_name: The name of the parameter to retrieve
        decrypt: Whether to decrypt SecureString parameters

    Returns:
        Parameter value or None if not found
    """
    local_value = os.getenv(env_var_name(parameter_name))
    if local_value:
        logger.debug(f"Using local environment variable for {parameter_name}")
        return local_value

    try:
        response = get_ssm_client().get_parameter(Name=parameter_name, WithDecryption=decrypt)
    except ClientError as e:
        error_code = e.response["Error"]["Code"]
        if error_code == "ParameterNotFound":
            logger.warning(f"Parameter {parameter_name} not found in Parameter Store")
        else:
            logger.error(f"Error retrieving parameter {parameter_name}: {e}")
        return None
    except BotoCoreError as e:
        logger.error(f"Unexpected error retrieving parameter {parameter_name}: {e}")
        return None

    logger.debug(f"Retrieved parameter {parameter_name} from Parameter Store")
    return response["Parameter"]["Value"]


class ParameterStoreConfig:
    """
    Prefixed, cached view over Parameter Store values.
    """

    def __init__(self, parameter_prefix: str = DEFAULT_PREFIX):
        self.parameter_prefix = parameter_prefix.rstrip("/")
        self._config_cache: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Configuration key (will be prefixed with parameter_prefix)
            default: Default value if not found
        """
        if key in self._config_cache:
            return self._config_cache[key]

        value = get_parameter(f"{self.parameter_prefix}/{key}")
        if value is None:
            value = default

        self._config_cache[key] = value
        return value

    def get_required(self, key: str) -> str:
        """
        Get a required configuration value.

        Raises:
            ValueError: If parameter is not found
        """
        value = self.get(key)
        if value is None:
            raise ValueError(
                f"Required parameter {self.parameter_prefix}/{key} not found"
            )
        return value

    def load_mail_config(self) -> Dict[str, str | None]:
        """
        Sender address and branding of provisioning emails.

        ``sender`` is None when mail is not configured; callers decide whether
        that is an error.
        """
        return {
            "sender": self.get("mail/from"),
            "brand_name": self.get("mail/brand-name", DEFAULT_BRAND_NAME),
            "reset_continue_url": self.get(
                "auth/reset-continue-url", DEFAULT_RESET_CONTINUE_URL
            ),
        }

    def export_engines(self) -> List[str]:
        """Ranked spreadsheet writer engines, comma separated in EXPORT_ENGINES."""
        raw = os.getenv("EXPORT_ENGINES") or self.get("export/engines")
        if not raw:
            return list(DEFAULT_EXPORT_ENGINES)
        return [engine.strip() for engine in raw.split(",") if engine.strip()]


# Global config instance
config = ParameterStoreConfig()


def clear_cache():
    """Clear parameter cache. Useful for testing or config updates."""
    get_parameter.cache_clear()
    config._config_cache.clear()
    logger.info("Parameter Store cache cleared")
