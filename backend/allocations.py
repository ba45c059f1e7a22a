"""
Allocation store: transactional create / update / delete of bookings.

Every public write runs as one unit of work through safe_db_operation. The
employee row is locked first, then overlaps are detected, the override
policy is applied, conflicting bookings are rewritten and the phase and
employee aggregates are adjusted before a single commit.
"""

import logging

from flask import current_app, has_app_context

from db import db
from engine import (
    assess_conflicts, evaluate_override_policy, find_overlapping_allocations, resolve_conflicts
)
from errors import (
    ConflictError, NotFoundError, ValidationError,
    parse_date, safe_db_operation, validate_date_range, validate_non_negative_number, validate_required
)
from models import Allocation, Employee, Project, normalize_phase_ids, phase_set_key
from phases import adjust_phase_members, attach_allocation, detach_allocation

logger = logging.getLogger(__name__)

DEFAULT_ACTIVE_PROJECT_STATUSES = ('on going', 'completed')

# Fields a caller may change through update_allocation
UPDATABLE_FIELDS = ('phases', 'start_date', 'end_date', 'hours_week', 'status',
                    'charge_out_rate', 'charge_type', 'can_override')
FIXED_FIELDS = ('employee_id', 'project_id')


def _config(key, default):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


class AllocationStore:
    """
    Create, update, delete and query allocations.

    Args:
        session: SQLAlchemy session to work in (defaults to db.session)
    """

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _lock_employee(self, employee_id):
        """Load the employee, holding a row lock when writes are serialized"""
        query = self.session.query(Employee).filter(Employee.id == employee_id)
        if _config('SERIALIZE_EMPLOYEE_WRITES', True):
            query = query.with_for_update()
        employee = query.first()
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    def _get_project(self, project_id):
        project = self.session.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    def _require_allocation(self, allocation_id):
        allocation = self.session.get(Allocation, allocation_id)
        if allocation is None:
            raise NotFoundError("Allocation", allocation_id)
        return allocation

    @staticmethod
    def _check_phases_on_project(phase_ids, project):
        unknown = sorted(set(phase_ids) - set(project.phase_ids))
        if unknown:
            raise ValidationError(
                f"Project {project.id} has no phase(s): {', '.join(unknown)}", 'phases'
            )

    def _clear_window(self, employee_id, start_date, end_date, exclude_id=None):
        """Detect, gate and resolve every booking that overlaps the window"""
        conflicts = find_overlapping_allocations(
            self.session, employee_id, start_date, end_date, exclude_id=exclude_id
        )
        if not conflicts:
            return []

        evaluate_override_policy(conflicts, start_date, end_date)
        logger.info(
            f"Overriding {len(conflicts)} allocation(s) of employee {employee_id}",
            extra={'start_date': start_date.isoformat(), 'end_date': end_date.isoformat()}
        )
        return resolve_conflicts(self.session, conflicts, start_date, end_date)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_allocation(self, data):
        """
        Book an employee on project phases.

        Required keys: employee_id, project_id, phases, start_date, end_date.
        Optional: hours_week, status, charge_out_rate, charge_type, can_override.

        Returns:
            Allocation: the persisted booking
        """
        validate_required(data, ['employee_id', 'project_id', 'start_date', 'end_date'])
        phase_ids = normalize_phase_ids(data.get('phases'))
        start_date = parse_date(data['start_date'], 'start_date')
        end_date = parse_date(data['end_date'], 'end_date')
        validate_date_range(start_date, end_date)
        hours_week = validate_non_negative_number(data.get('hours_week', 40.0), 'hours_week')

        def _create():
            employee = self._lock_employee(data['employee_id'])
            project = self._get_project(data['project_id'])
            self._check_phases_on_project(phase_ids, project)

            existing = self.find_existing_allocation(employee.id, project.id, phase_ids)
            if existing is not None:
                raise ConflictError(
                    f"Employee {employee.id} already holds an equivalent allocation on project {project.id}",
                    blocking_ids=[existing.id]
                )

            self._clear_window(employee.id, start_date, end_date)

            allocation = Allocation(
                employee_id=employee.id,
                project_id=project.id,
                phases=phase_ids,
                start_date=start_date,
                end_date=end_date,
                hours_week=hours_week,
                status=data.get('status') or 'active',
                charge_out_rate=data.get('charge_out_rate'),
                charge_type=data.get('charge_type'),
                can_override=bool(data.get('can_override', False))
            )
            attach_allocation(self.session, allocation)
            employee.assigned = True
            return allocation

        allocation = safe_db_operation(_create, "Failed to create allocation", session=self.session)
        logger.info(f"Created allocation {allocation.id} for employee {allocation.employee_id}")
        return allocation

    def update_allocation(self, allocation_id, updates):
        """
        Change an allocation, overriding whatever the new window collides with.

        Returns:
            Allocation: the updated booking
        """
        updates = dict(updates or {})
        for field in FIXED_FIELDS:
            if field in updates:
                raise ValidationError(f"{field} cannot be changed; delete and recreate the allocation", field)
        unknown = sorted(set(updates) - set(UPDATABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown allocation field(s): {', '.join(unknown)}", unknown[0])

        new_phase_ids = normalize_phase_ids(updates['phases']) if 'phases' in updates else None
        if 'hours_week' in updates:
            updates['hours_week'] = validate_non_negative_number(updates['hours_week'], 'hours_week')

        def _update():
            allocation = self._require_allocation(allocation_id)
            self._lock_employee(allocation.employee_id)

            start_date = allocation.start_date
            end_date = allocation.end_date
            if 'start_date' in updates:
                start_date = parse_date(updates['start_date'], 'start_date')
            if 'end_date' in updates:
                end_date = parse_date(updates['end_date'], 'end_date')
            dates_changed = (start_date, end_date) != (allocation.start_date, allocation.end_date)

            added = removed = frozenset()
            if new_phase_ids is not None:
                project = self._get_project(allocation.project_id)
                self._check_phases_on_project(new_phase_ids, project)
                old_set = allocation.phase_set
                new_set = frozenset(new_phase_ids)
                added, removed = new_set - old_set, old_set - new_set

            if dates_changed:
                validate_date_range(start_date, end_date)
                self._clear_window(allocation.employee_id, start_date, end_date, exclude_id=allocation.id)
                validate_date_range(start_date, end_date)
                allocation.start_date = start_date
                allocation.end_date = end_date

            if new_phase_ids is not None:
                allocation.phases = new_phase_ids
                if added or removed:
                    adjust_phase_members(self._get_project(allocation.project_id), added=added, removed=removed)

            for field in ('hours_week', 'status', 'charge_out_rate', 'charge_type'):
                if field in updates:
                    setattr(allocation, field, updates[field])
            if 'can_override' in updates:
                allocation.can_override = bool(updates['can_override'])

            self.session.flush()
            return allocation

        allocation = safe_db_operation(_update, "Failed to update allocation", session=self.session)
        logger.info(f"Updated allocation {allocation.id}")
        return allocation

    def delete_allocation(self, allocation_id):
        """Delete an allocation, its tasks and its share of the aggregates"""

        def _delete():
            allocation = self._require_allocation(allocation_id)
            employee = self._lock_employee(allocation.employee_id)

            live_count = self.session.query(Allocation).filter(
                Allocation.employee_id == employee.id
            ).count()

            detach_allocation(self.session, allocation)
            if live_count == 1:
                employee.assigned = False

        safe_db_operation(_delete, "Failed to delete allocation", session=self.session)
        logger.info(f"Deleted allocation {allocation_id}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_allocation(self, allocation_id):
        """Get a single allocation, raising NotFoundError if it is missing"""
        return self._require_allocation(allocation_id)

    def get_employee_allocations(self, employee_id, active_only=False):
        """
        Allocations of one employee, ordered by start date.

        With active_only, only allocations whose project status is listed in
        ACTIVE_PROJECT_STATUSES are returned.
        """
        query = self.session.query(Allocation).filter(Allocation.employee_id == employee_id)
        if active_only:
            statuses = _config('ACTIVE_PROJECT_STATUSES', DEFAULT_ACTIVE_PROJECT_STATUSES)
            query = query.join(Project, Project.id == Allocation.project_id).filter(
                Project.status.in_(list(statuses))
            )
        return query.order_by(Allocation.start_date, Allocation.id).all()

    def get_project_allocations(self, project_id):
        return self.session.query(Allocation).filter(
            Allocation.project_id == project_id
        ).order_by(Allocation.start_date, Allocation.id).all()

    def get_phase_allocations(self, project_id, phase_id):
        """Allocations of a project whose phase set contains phase_id"""
        return [
            allocation for allocation in self.get_project_allocations(project_id)
            if phase_id in allocation.phase_set
        ]

    def find_existing_allocation(self, employee_id, project_id, phase_ids):
        """Return a booking of the same employee, project and phase set, if any"""
        return self.session.query(Allocation).filter(
            Allocation.employee_id == employee_id,
            Allocation.project_id == project_id,
            Allocation.normalized_phase_ids == phase_set_key(phase_ids)
        ).first()

    def preview_conflicts(self, employee_id, start_date, end_date, exclude_id=None):
        """
        Dry run of the override step for a proposed window.

        Returns:
            dict: the assessment (can_override, would_delete, would_modify, blocking_ids)
        """
        start_date = parse_date(start_date, 'start_date')
        end_date = parse_date(end_date, 'end_date')
        validate_date_range(start_date, end_date)
        if self.session.get(Employee, employee_id) is None:
            raise NotFoundError("Employee", employee_id)

        conflicts = find_overlapping_allocations(
            self.session, employee_id, start_date, end_date, exclude_id=exclude_id
        )
        return assess_conflicts(conflicts, start_date, end_date).to_dict()
