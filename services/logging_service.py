"""
Logging service for consistent structured logging across services
Provides standardized logging patterns for allocation operations
"""

import logging
from typing import Dict, Any, Optional
from datetime import datetime
from flask import g, has_request_context
from utils.logging_config import get_logger


class LoggingService:
    """
    Service for consistent business operation logging
    """

    def __init__(self):
        self.logger = get_logger('services')
        self.performance_logger = get_logger('performance')

    @staticmethod
    def _with_correlation(data: Dict[str, Any]) -> Dict[str, Any]:
        if has_request_context() and hasattr(g, 'correlation_id'):
            data['correlation_id'] = g.correlation_id
        return data

    def log_business_operation(self, operation: str, entity_type: str, entity_id: Optional[Any] = None,
                               user_id: Optional[int] = None, details: Optional[Dict[str, Any]] = None,
                               level: int = logging.INFO):
        """
        Log a business operation with structured data

        Args:
            operation: The operation performed (e.g., 'allocate', 'release')
            entity_type: Type of entity (e.g., 'trip', 'vehicle')
            entity_id: ID of the entity (if applicable)
            user_id: ID of the user performing the operation
            details: Additional operation details
            level: Logging level
        """
        log_data = self._with_correlation({
            'operation': operation,
            'entity_type': entity_type,
            'entity_id': entity_id,
            'user_id': user_id,
            'timestamp': datetime.now().isoformat(),
            'details': details or {}
        })

        message = f"Business operation: {operation} {entity_type}"
        if entity_id is not None:
            message += f" (ID: {entity_id})"

        self.logger.log(level, message, extra=log_data)

    def log_performance_metric(self, metric_name: str, value: float, unit: str,
                               operation: Optional[str] = None,
                               details: Optional[Dict[str, Any]] = None):
        """Log a performance metric such as allocation latency"""
        metric_data = self._with_correlation({
            'metric': metric_name,
            'value': value,
            'unit': unit,
            'operation': operation,
            'timestamp': datetime.now().isoformat(),
            'details': details or {}
        })

        message = f"Performance metric: {metric_name} = {value} {unit}"
        if operation:
            message += f" (operation: {operation})"

        self.performance_logger.info(message, extra=metric_data)

    def log_error(self, error: Exception, context: Optional[str] = None,
                  user_id: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        """
        Log an error with full context and structured data

        Args:
            error: The exception that occurred
            context: Additional context about when/where the error occurred
            user_id: ID of the user (if applicable)
            details: Additional error details
        """
        error_data = self._with_correlation({
            'error_type': type(error).__name__,
            'error_message': str(error),
            'context': context,
            'user_id': user_id,
            'timestamp': datetime.now().isoformat(),
            'details': details or {}
        })

        message = f"Error occurred: {type(error).__name__}"
        if context:
            message += f" in {context}"

        self.logger.error(message, extra=error_data, exc_info=error)
