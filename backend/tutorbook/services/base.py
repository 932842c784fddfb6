# backend/tutorbook/services/base.py
"""
Base Service Pattern for tutorbook.

Provides common functionality for all service classes including:
- Transaction management
- Logging
- Clock injection
- Payload validation
- Performance monitoring
"""

from contextlib import contextmanager
from functools import wraps
import logging
import time
from typing import Any, Callable, Mapping, Optional, Type, TypeVar, cast

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.clock import Clock, system_clock
from ..core.exceptions import ServiceException, validation_error_to_exception
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

SLOW_OPERATION_SECONDS = 1.0

M = TypeVar("M", bound=BaseModel)


class BaseService:
    """
    Base class for all service layer components.

    Provides common patterns for:
    - Database session management
    - Logging
    - Transaction handling
    - Performance monitoring
    """

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        """
        Initialize base service.

        Args:
            db: Database session
            clock: Source of "now"; defaults to the system clock
        """
        self.db = db
        self.clock: Clock = clock or system_clock
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self):
        """
        Context manager for database transactions.

        Usage:
            with self.transaction():
                # Do multiple operations
                self.db.add(entity)
                # Note: commit is handled automatically
        """
        try:
            yield self.db
            self.db.commit()
            self.logger.debug("Transaction committed successfully")
        except SQLAlchemyError as e:
            self.logger.error(f"Transaction failed: {str(e)}")
            self.db.rollback()
            raise ServiceException(f"Database operation failed: {str(e)}")
        except Exception:
            self.db.rollback()
            raise

    def now(self):
        return self.clock.now()

    @staticmethod
    def parse_payload(schema: Type[M], data: M | Mapping[str, Any]) -> M:
        """
        Validate an operation payload, mapping Pydantic errors to ValidationException.
        """
        if isinstance(data, schema):
            return data
        try:
            if isinstance(data, BaseModel):
                return schema.model_validate(data.model_dump())
            return schema.model_validate(dict(data))
        except ValidationError as exc:
            raise validation_error_to_exception(exc) from exc

    @staticmethod
    def measure_operation(operation_name: str) -> Callable:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("create_session")
            def create_session(self, data):
                # Method implementation

        Args:
            operation_name: Name of the operation for metrics

        Returns:
            Decorator function
        """

        F = TypeVar("F", bound=Callable[..., Any])

        def decorator(func: F) -> F:
            func._operation_name = operation_name  # type: ignore[attr-defined]
            func._is_measured = True  # type: ignore[attr-defined]

            @wraps(func)
            def wrapper(self, *args, **kwargs):
                start_time = time.monotonic()
                success = False
                error_type = None

                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.monotonic() - start_time
                    if elapsed > SLOW_OPERATION_SECONDS and hasattr(self, "logger"):
                        self.logger.warning(
                            f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                        )

                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="success" if success else "error",
                        error_type=error_type,
                    )

            return cast(F, wrapper)

        return decorator

    @contextmanager
    def measure_operation_context(self, operation_name: str):
        """
        Context manager to measure operation performance.

        Usage:
            with self.measure_operation_context("complete_one"):
                # Do work here
                pass
        """
        start_time = time.monotonic()
        success = False

        try:
            yield
            success = True
        finally:
            elapsed = time.monotonic() - start_time
            if elapsed > SLOW_OPERATION_SECONDS:
                self.logger.warning(
                    f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                )

            prometheus_metrics.record_service_operation(
                service=self.__class__.__name__,
                operation=operation_name,
                duration=elapsed,
                status="success" if success else "error",
            )

    def log_operation(self, operation: str, **context):
        """
        Log an operation with context.

        Args:
            operation: Operation name
            **context: Additional context to log
        """
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})
