"""
Configuration validation for the allocation service
Checks environment and engine settings before serving traffic
"""
import os
import logging
from typing import Dict, List, Tuple, Any, Mapping

logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """Raised when critical configuration is missing or invalid"""
    pass


def validate_flask_config() -> Tuple[bool, List[str]]:
    """
    Validate Flask configuration for production.

    Returns:
        tuple: (is_valid: bool, issues: List[str])
    """
    issues = []

    session_secret = os.getenv('SESSION_SECRET')
    if not session_secret:
        issues.append("Missing SESSION_SECRET environment variable")
    elif len(session_secret) < 32:
        issues.append("SESSION_SECRET should be at least 32 characters for security")

    if not os.getenv('JWT_SECRET_KEY'):
        issues.append("JWT_SECRET_KEY not set - JWTs are signed with SESSION_SECRET")

    debug_mode = os.getenv('DEBUG', 'False').lower()
    if debug_mode in ('true', '1', 'yes'):
        issues.append("DEBUG mode is enabled - should be disabled in production")

    return len(issues) == 0, issues


def validate_database_config() -> Tuple[bool, List[str]]:
    """
    Validate database configuration.

    SQLite is accepted for development but cannot serve concurrent
    allocations from several processes.

    Returns:
        tuple: (is_valid: bool, issues: List[str])
    """
    issues = []

    database_url = os.getenv('DATABASE_URL', '')
    if not database_url:
        issues.append("DATABASE_URL not set - falling back to local SQLite")
    elif database_url.startswith('sqlite'):
        issues.append("DATABASE_URL points to SQLite - use PostgreSQL for production")
    elif not database_url.startswith(('postgresql://', 'postgres://', 'postgresql+psycopg2://')):
        issues.append("DATABASE_URL must be a PostgreSQL or SQLite URL")

    return len(issues) == 0, issues


def validate_allocation_config(config: Mapping[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate allocation engine settings.

    Args:
        config: Flask app config (or any mapping with the ALLOCATION_* keys)

    Returns:
        tuple: (is_valid: bool, issues: List[str])
    """
    issues = []

    timeout = config.get('ALLOCATION_LEDGER_TIMEOUT')
    if not isinstance(timeout, (int, float)) or timeout <= 0:
        issues.append(f"ALLOCATION_LEDGER_TIMEOUT must be a positive number of seconds (got {timeout!r})")

    cost_buffer = config.get('ALLOCATION_COST_BUFFER')
    if not isinstance(cost_buffer, (int, float)) or cost_buffer < 1.0:
        issues.append(f"ALLOCATION_COST_BUFFER must be at least 1.0 (got {cost_buffer!r})")

    retries = config.get('ALLOCATION_RESERVE_RETRIES')
    if not isinstance(retries, int) or isinstance(retries, bool) or retries < 1:
        issues.append(f"ALLOCATION_RESERVE_RETRIES must be a positive integer (got {retries!r})")

    return len(issues) == 0, issues


def check_production_readiness(config: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Comprehensive check of production readiness.

    Returns:
        dict: Status information including issues and recommendations
    """
    debug_mode = os.getenv('DEBUG', 'False').lower() in ('true', '1', 'yes')

    flask_valid, flask_issues = validate_flask_config()
    database_valid, database_issues = validate_database_config()
    allocation_valid, allocation_issues = validate_allocation_config(config)

    all_issues = flask_issues + database_issues + allocation_issues
    is_production_ready = bool(len(all_issues) == 0 and not debug_mode)

    result = {
        'production_ready': is_production_ready,
        'debug_mode': debug_mode,
        'database_configured': database_valid,
        'allocation_config_valid': allocation_valid,
        'issues': all_issues,
        'recommendations': []
    }

    if debug_mode:
        result['recommendations'].append("Disable DEBUG mode for production deployment")

    if not database_valid:
        result['recommendations'].append("Configure a PostgreSQL DATABASE_URL for concurrent allocation")

    if not allocation_valid:
        result['recommendations'].append("Fix the ALLOCATION_* engine settings")

    if not is_production_ready:
        result['recommendations'].append("Address configuration issues before deploying to production")

    if is_production_ready:
        logger.info("ALLOCATION_CONFIG: Production readiness check PASSED")
    else:
        logger.warning(f"ALLOCATION_CONFIG: Production readiness check FAILED - Issues: {len(all_issues)}")
        for issue in all_issues:
            logger.warning(f"ALLOCATION_CONFIG: Issue - {issue}")

    return result


def get_allocation_config_status(config: Mapping[str, Any]) -> str:
    """
    Get a human-readable status of the allocation engine configuration.

    Raises:
        ConfigValidationError: if an engine setting is unusable
    """
    allocation_valid, allocation_issues = validate_allocation_config(config)
    if not allocation_valid:
        raise ConfigValidationError("; ".join(allocation_issues))

    return (f"ledger_timeout={config['ALLOCATION_LEDGER_TIMEOUT']}s, "
            f"cost_buffer={config['ALLOCATION_COST_BUFFER']}, "
            f"reserve_retries={config['ALLOCATION_RESERVE_RETRIES']}")
