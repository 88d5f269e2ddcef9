# core/config_validator.py

from typing import List

from core.config import Settings
from core.logging_config import logger


SUPPORTED_STORE_BACKENDS = ("csv", "sql")


def validate_required_config(settings: Settings) -> List[str]:
    """
    Validate settings the service cannot run without.
    Returns list of problems.
    """
    problems = []

    if settings.SIGNUP_STORE_BACKEND not in SUPPORTED_STORE_BACKENDS:
        problems.append(
            f"SIGNUP_STORE_BACKEND must be one of {', '.join(SUPPORTED_STORE_BACKENDS)} "
            f"(got {settings.SIGNUP_STORE_BACKEND!r})"
        )

    if settings.SIGNUP_STORE_BACKEND == "csv" and not settings.SIGNUPS_FILE:
        problems.append("SIGNUPS_FILE")
    if settings.SIGNUP_STORE_BACKEND == "sql" and not settings.DATABASE_URL:
        problems.append("DATABASE_URL")

    if settings.SIGNUP_RATE_LIMIT_MAX < 1:
        problems.append("SIGNUP_RATE_LIMIT_MAX must be at least 1")

    return problems


def validate_optional_config(settings: Settings) -> List[str]:
    """
    Validate optional but recommended configuration.
    Returns list of warnings.
    """
    warnings = []

    if not settings.EXPORT_KEY:
        warnings.append("EXPORT_KEY (signup export is disabled until it is set)")

    return warnings


def validate_config_on_startup(settings: Settings) -> None:
    """
    Raises RuntimeError if critical config is missing or invalid.
    Logs warnings for optional config.
    """
    problems = validate_required_config(settings)
    warnings = validate_optional_config(settings)

    if problems:
        error_msg = f"Invalid configuration: {'; '.join(problems)}"
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    for warning in warnings:
        logger.warning(f"Optional configuration missing: {warning}")

    logger.info("Configuration validation passed")
