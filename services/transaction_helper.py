"""
Transaction Helper Service

Commit/rollback handling for service operations and retry logic for
transient database connection errors.
"""

from functools import wraps
from typing import Callable, Optional
import logging
from sqlalchemy.exc import OperationalError, DisconnectionError
from flask import current_app, has_app_context
from app import db
import time

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (DisconnectionError, OperationalError)

class TransactionHelper:
    """Helper class for managing database transactions safely"""

    @staticmethod
    def with_transaction(func: Callable) -> Callable:
        """
        Decorator that wraps a function in a database transaction.
        Commits when the function returns and rolls back if it raises.

        Usage:
            @TransactionHelper.with_transaction
            def release(vehicle_id, driver_id):
                # Your database operations here
                pass
        """
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                result = func(*args, **kwargs)
                db.session.commit()
                return result
            except Exception as e:
                db.session.rollback()
                logger.error(f"Transaction error in {func.__name__}: {str(e)}")
                raise
        return wrapper

    @staticmethod
    def with_connection_retry(max_retries: Optional[int] = None, backoff: float = 0.05):
        """
        Decorator for operations that need connection retry logic with exponential backoff.

        Only connection-level errors are retried; every other exception
        (including domain errors such as ResourceConflict) propagates at once.

        Args:
            max_retries: Maximum number of attempts; defaults to ALLOCATION_RESERVE_RETRIES
            backoff: Initial backoff delay in seconds
        """
        def decorator(func: Callable) -> Callable:
            @wraps(func)
            def wrapper(*args, **kwargs):
                attempts = max_retries
                if attempts is None:
                    attempts = current_app.config.get('ALLOCATION_RESERVE_RETRIES', 3) if has_app_context() else 3
                attempts = max(1, int(attempts))

                for attempt in range(attempts):
                    try:
                        return func(*args, **kwargs)
                    except RETRYABLE_ERRORS as e:
                        db.session.rollback()
                        if attempt < attempts - 1:
                            sleep_time = backoff * (2 ** attempt)  # Exponential backoff
                            logger.warning(f"Database connection error in {func.__name__} "
                                           f"(attempt {attempt + 1}/{attempts}): {str(e)}. Retrying in {sleep_time}s...")
                            time.sleep(sleep_time)
                            continue
                        logger.error(f"Max retries reached for {func.__name__}")
                        raise
            return wrapper
        return decorator
