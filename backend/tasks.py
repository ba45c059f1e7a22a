"""
Task writes that feed the phase completion-rate rollup.

Each write re-derives number_of_tasks and completion_rate for the phase(s)
it touched, in the same transaction as the task change. Utilization is not
recomputed here; it is an on-demand batch job (see utilization.py).
"""

import logging

from db import db
from errors import (
    NotFoundError, ValidationError,
    parse_date, safe_db_operation, validate_enum, validate_non_negative_number, validate_required
)
from models import Allocation, Task
from phases import recompute_for_pairs

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('title', 'description', 'status', 'estimated_hours', 'actual_hours',
                   'task_date', 'phase_id', 'allocation_id')


def _session(session):
    return session if session is not None else db.session


def _require_task(session, task_id):
    task = session.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task", task_id)
    return task


def _require_allocation(session, allocation_id):
    allocation = session.get(Allocation, allocation_id)
    if allocation is None:
        raise NotFoundError("Allocation", allocation_id)
    return allocation


def _check_phase(allocation, phase_id):
    if phase_id not in allocation.phase_set:
        raise ValidationError(f"Allocation {allocation.id} does not cover phase {phase_id}", 'phase_id')


def create_task(data, session=None):
    """
    Log a task against one phase of an allocation.

    Required keys: allocation_id, phase_id, title, task_date.
    """
    session = _session(session)
    validate_required(data, ['allocation_id', 'phase_id', 'title', 'task_date'])
    task_date = parse_date(data['task_date'], 'task_date')
    status = data.get('status', Task.STATUS_PENDING)
    validate_enum(status, Task.STATUSES, 'status')
    estimated_hours = validate_non_negative_number(data.get('estimated_hours', 0), 'estimated_hours')
    actual_hours = validate_non_negative_number(data.get('actual_hours', 0), 'actual_hours')

    def _create():
        allocation = _require_allocation(session, data['allocation_id'])
        _check_phase(allocation, data['phase_id'])

        task = Task(
            allocation_id=allocation.id,
            employee_id=allocation.employee_id,
            project_id=allocation.project_id,
            phase_id=data['phase_id'],
            title=data['title'],
            task_date=task_date,
            description=data.get('description'),
            status=status,
            estimated_hours=estimated_hours,
            actual_hours=actual_hours
        )
        session.add(task)
        session.flush()
        recompute_for_pairs(session, {(task.project_id, task.phase_id)})
        return task

    task = safe_db_operation(_create, "Failed to create task", session=session)
    logger.info(f"Created task {task.id} on phase {task.phase_id}")
    return task


def update_task(task_id, updates, session=None):
    """Change a task; the old and the new phase are both re-derived"""
    session = _session(session)
    updates = dict(updates or {})
    unknown = sorted(set(updates) - set(EDITABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown task field(s): {', '.join(unknown)}", unknown[0])
    if 'status' in updates:
        validate_enum(updates['status'], Task.STATUSES, 'status')
    for field in ('estimated_hours', 'actual_hours'):
        if field in updates:
            updates[field] = validate_non_negative_number(updates[field], field)
    if 'task_date' in updates:
        updates['task_date'] = parse_date(updates['task_date'], 'task_date')

    def _update():
        task = _require_task(session, task_id)
        touched = {(task.project_id, task.phase_id)}

        allocation = _require_allocation(session, updates.get('allocation_id', task.allocation_id))
        phase_id = updates.get('phase_id', task.phase_id)
        _check_phase(allocation, phase_id)

        for field, value in updates.items():
            setattr(task, field, value)
        task.employee_id = allocation.employee_id
        task.project_id = allocation.project_id

        session.flush()
        touched.add((task.project_id, task.phase_id))
        recompute_for_pairs(session, touched)
        return task

    return safe_db_operation(_update, "Failed to update task", session=session)


def delete_task(task_id, session=None):
    """Delete a task and re-derive its phase"""
    session = _session(session)

    def _delete():
        task = _require_task(session, task_id)
        touched = {(task.project_id, task.phase_id)}
        session.delete(task)
        session.flush()
        recompute_for_pairs(session, touched)

    safe_db_operation(_delete, "Failed to delete task", session=session)
    logger.info(f"Deleted task {task_id}")


def approve_task(task_id, session=None):
    """Mark a task completed"""
    return update_task(task_id, {'status': Task.STATUS_COMPLETED}, session=session)


def reject_task(task_id, reason, session=None):
    """Mark a task rejected with the reviewer's reason"""
    session = _session(session)
    if not reason or not str(reason).strip():
        raise ValidationError("A reason is required to reject a task", 'reason_for_rejection')

    def _reject():
        task = _require_task(session, task_id)
        task.status = Task.STATUS_REJECTED
        task.reason_for_rejection = reason
        session.flush()
        recompute_for_pairs(session, {(task.project_id, task.phase_id)})
        return task

    return safe_db_operation(_reject, "Failed to reject task", session=session)
