"""
Custom error classes and error handling utilities for the allocation engine
"""

from datetime import date, datetime
import logging

from sqlalchemy.exc import SQLAlchemyError

# Set up logger
logger = logging.getLogger(__name__)


class AllocationEngineError(Exception):
    """Base exception class for the allocation engine"""

    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        """Error body for the surrounding web layer"""
        data = {
            'type': self.__class__.__name__,
            'message': self.message
        }
        if self.payload:
            data['details'] = self.payload
        return data


class ValidationError(AllocationEngineError):
    """Raised when input validation fails"""

    def __init__(self, message, field=None):
        super().__init__(message, 400, {'field': field} if field else None)
        self.field = field


class NotFoundError(AllocationEngineError):
    """Raised when a requested resource is not found"""

    def __init__(self, resource_type, resource_id=None):
        message = f"{resource_type} not found"
        if resource_id is not None:
            message += f" with id {resource_id}"
        super().__init__(message, 404)
        self.resource_type = resource_type
        self.resource_id = resource_id


class ConflictError(AllocationEngineError):
    """Raised when overlapping allocations block a write.

    ``blocking_ids`` lists the allocations that have to be resolved by hand.
    """

    def __init__(self, message, blocking_ids=None):
        blocking_ids = sorted(blocking_ids or [])
        super().__init__(message, 409, {'blocking_ids': blocking_ids} if blocking_ids else None)
        self.blocking_ids = blocking_ids


class PersistenceError(AllocationEngineError):
    """Raised when the store or the transaction fails. Safe to retry."""

    def __init__(self, message="Database operation failed"):
        super().__init__(message, 503)


def validate_required(data, fields):
    """Validate that required fields are present in data"""
    missing = []
    for field in fields:
        if field not in data or data[field] is None or (isinstance(data[field], str) and data[field].strip() == ''):
            missing.append(field)

    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing[0])


def parse_date(value, field_name):
    """Accept a date, a datetime or an ISO formatted string and return a date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value).date()
        except ValueError:
            raise ValidationError(f"Invalid date format for {field_name}", field_name)
    raise ValidationError(f"{field_name} must be a date", field_name)


def validate_date_range(start_date, end_date, start_field="start_date", end_field="end_date"):
    """Validate date range logic"""
    if start_date is None or end_date is None:
        raise ValidationError(f"{start_field} and {end_field} are required")
    if start_date >= end_date:
        raise ValidationError(f"{end_field} must be after {start_field}", end_field)


def validate_non_negative_number(value, field_name):
    """Validate that a value is a number >= 0"""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a valid number", field_name)
    try:
        num = float(value)
    except (ValueError, TypeError):
        raise ValidationError(f"{field_name} must be a valid number", field_name)
    if num < 0:
        raise ValidationError(f"{field_name} must be a non-negative number", field_name)
    return num


def validate_enum(value, allowed_values, field_name):
    """Validate that a value is in an allowed set"""
    if value not in allowed_values:
        raise ValidationError(f"{field_name} must be one of: {', '.join(allowed_values)}", field_name)


def safe_db_operation(operation_func, error_message="Database operation failed", session=None):
    """
    Run one unit of work and commit it.

    Any error rolls the whole session back. Engine errors are re-raised as
    they are; store failures are wrapped in PersistenceError.
    """
    if session is None:
        from db import db
        session = db.session

    try:
        result = operation_func()
        session.commit()
        return result
    except AllocationEngineError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Database operation failed: {str(e)}")
        raise PersistenceError(error_message) from e
    except Exception:
        session.rollback()
        raise
