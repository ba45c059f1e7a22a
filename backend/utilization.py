"""
Weekly utilization of an employee: completed task hours against booked hours.

The table is rebuilt from scratch on every call and cached on the employee
record. It reads the employee's whole allocation and task history, so call
it on demand, not from every task write.
"""

from collections import defaultdict
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
import logging
import math

from db import db
from errors import NotFoundError, safe_db_operation
from models import Allocation, Employee, Task

logger = logging.getLogger(__name__)

# Weeks past the fourth of a month are not reported
MAX_WEEK_OF_MONTH = 4
WEEK_STEP = timedelta(days=7)


def get_week_of_month(day):
    """
    1-based week of the month, weeks starting on Monday.

    The days of the (Monday to Sunday) week holding the 1st form week 1,
    so a month can reach week 5 or 6.
    """
    first_weekday = day.replace(day=1).isoweekday()
    return (day.day - 1 + first_weekday - 1) // 7 + 1


def bucket_key(day):
    return day.year, day.month, get_week_of_month(day)


def calculate_allocated_hours(allocations):
    """
    Spread every allocation's hours_week over (year, month, week) buckets.

    The allocation is walked in 7-day steps from its start date up to and
    including its end date; each step adds hours_week / ceil(days / 7).
    """
    allocated = defaultdict(float)
    for allocation in allocations:
        weeks = max(1, math.ceil(allocation.duration_days / 7))
        hours_per_step = (allocation.hours_week or 0) / weeks

        current = allocation.start_date
        # End date is inclusive: a Monday to Monday booking counts in two weeks
        while current <= allocation.end_date:
            allocated[bucket_key(current)] += hours_per_step
            current += WEEK_STEP
    return allocated


def calculate_actual_hours(tasks):
    """Sum actual_hours of tasks into (year, month, week) buckets by task date"""
    actual = defaultdict(float)
    for task in tasks:
        actual[bucket_key(task.task_date)] += task.actual_hours or 0
    return actual


def utilization_percentage(actual, allocated):
    """Capped percentage, ties on the first decimal rounded up"""
    if allocated <= 0:
        return 0.0
    percentage = min(100.0, actual / allocated * 100)
    return float(Decimal(percentage).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))


def build_utilization_table(allocations, tasks):
    """
    Build {year: {month: {'week1'..'week4': pct}}} from bookings and completed tasks.

    Only months with at least one completed task are listed.
    """
    allocated = calculate_allocated_hours(allocations)
    actual = calculate_actual_hours(tasks)

    table = {}
    for key in sorted(actual):
        year, month, week = key
        weeks = table.setdefault(str(year), {}).setdefault(
            f"{month:02d}", {f"week{n}": 0.0 for n in range(1, MAX_WEEK_OF_MONTH + 1)}
        )
        if week > MAX_WEEK_OF_MONTH:
            continue
        weeks[f"week{week}"] = utilization_percentage(actual[key], allocated.get(key, 0.0))
    return table


def calculate_utilization(employee_id, session=None):
    """
    Recompute an employee's utilization table and store it on the employee.

    Args:
        employee_id: ID of the employee
        session: SQLAlchemy session (defaults to db.session)

    Returns:
        dict: the utilization table
    """
    session = session if session is not None else db.session

    def _calculate():
        employee = session.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)

        allocations = session.query(Allocation).filter(Allocation.employee_id == employee_id).all()
        tasks = session.query(Task).filter(
            Task.employee_id == employee_id,
            Task.status == Task.STATUS_COMPLETED
        ).all()

        table = build_utilization_table(allocations, tasks)
        employee.utilization = table
        return table

    table = safe_db_operation(_calculate, "Failed to calculate utilization", session=session)
    logger.info(f"Recomputed utilization for employee {employee_id}")
    return table
