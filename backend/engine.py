"""
Allocation conflict engine.

Finds the bookings a new date window collides with, decides whether they
may be overridden and rewrites them so the window becomes free. Intervals
are compared half-open; rewritten bookings keep a one-day gap to the new
window so no two bookings of an employee ever share a day.
"""

from dataclasses import dataclass, field
from datetime import timedelta
import logging

from errors import ConflictError
from models import Allocation
from phases import attach_allocation, detach_allocation

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)

# Resolver actions
ACTION_DELETED = 'deleted'
ACTION_TRIMMED_END = 'trimmed_end'
ACTION_TRIMMED_START = 'trimmed_start'
ACTION_SPLIT = 'split'
ACTION_MOVED = 'moved'


def intervals_overlap(start1, end1, start2, end2):
    """True when [start1, end1) and [start2, end2) share at least one instant"""
    return start1 < end2 and start2 < end1


def find_overlapping_allocations(session, employee_id, start_date, end_date, exclude_id=None):
    """
    Return the employee's allocations that overlap the window.

    Args:
        session: SQLAlchemy session
        employee_id: ID of the employee
        start_date, end_date: half-open window to check
        exclude_id: allocation to leave out (the one being updated)

    Returns:
        list: overlapping Allocation rows ordered by start date
    """
    query = session.query(Allocation).filter(
        Allocation.employee_id == employee_id,
        Allocation.start_date < end_date,
        Allocation.end_date > start_date
    )
    if exclude_id is not None:
        query = query.filter(Allocation.id != exclude_id)

    candidates = query.order_by(Allocation.start_date, Allocation.id).all()
    return [
        allocation for allocation in candidates
        if intervals_overlap(allocation.start_date, allocation.end_date, start_date, end_date)
    ]


def is_subsumed(conflict_start, conflict_end, new_start, new_end):
    return conflict_start >= new_start and conflict_end <= new_end


@dataclass
class OverrideAssessment:
    """Outcome of checking a conflict set against the override policy"""
    can_override: bool
    would_delete: list = field(default_factory=list)
    would_modify: list = field(default_factory=list)
    blocking_ids: list = field(default_factory=list)

    @property
    def has_conflicts(self):
        return bool(self.would_delete or self.would_modify)

    def to_dict(self):
        return {
            'can_override': self.can_override,
            'has_conflicts': self.has_conflicts,
            'would_delete': [allocation.to_dict() for allocation in self.would_delete],
            'would_modify': [allocation.to_dict() for allocation in self.would_modify],
            'blocking_ids': list(self.blocking_ids)
        }


def assess_conflicts(conflicts, new_start, new_end):
    """
    Classify conflicts without touching them.

    A conflict lying entirely inside the new window would be deleted; any
    other overlap would be trimmed or split. The set can be overridden only
    when every conflicting allocation carries can_override.
    """
    assessment = OverrideAssessment(can_override=True)
    for conflict in conflicts:
        if not conflict.can_override:
            assessment.blocking_ids.append(conflict.id)
        if is_subsumed(conflict.start_date, conflict.end_date, new_start, new_end):
            assessment.would_delete.append(conflict)
        else:
            assessment.would_modify.append(conflict)

    assessment.blocking_ids.sort()
    assessment.can_override = not assessment.blocking_ids
    return assessment


def evaluate_override_policy(conflicts, new_start, new_end):
    """
    Same as assess_conflicts, but a non-overridable conflict is an error.

    Raises:
        ConflictError: carrying the ids of the blocking allocations
    """
    assessment = assess_conflicts(conflicts, new_start, new_end)
    if not assessment.can_override:
        ids = ', '.join(str(allocation_id) for allocation_id in assessment.blocking_ids)
        raise ConflictError(
            f"Overlapping allocation(s) {ids} cannot be overridden",
            blocking_ids=assessment.blocking_ids
        )
    return assessment


def _valid_window(start_date, end_date):
    return start_date < end_date


def _resolve_one(session, conflict, new_start, new_end):
    """Rewrite a single conflict and describe what was done"""
    conflict_id = conflict.id
    cs, ce = conflict.start_date, conflict.end_date
    left = (cs, new_start - ONE_DAY)
    right = (new_end + ONE_DAY, ce)

    if is_subsumed(cs, ce, new_start, new_end):
        detach_allocation(session, conflict)
        return {'allocation_id': conflict_id, 'action': ACTION_DELETED, 'new_allocation_id': None}

    if cs < new_start and ce > new_end:
        keep_left = _valid_window(*left)
        keep_right = _valid_window(*right)

        if keep_left and keep_right:
            clone = conflict.clone(*right)
            conflict.end_date = left[1]
            attach_allocation(session, clone)
            return {'allocation_id': conflict_id, 'action': ACTION_SPLIT, 'new_allocation_id': clone.id}
        if keep_left:
            conflict.end_date = left[1]
            return {'allocation_id': conflict_id, 'action': ACTION_TRIMMED_END, 'new_allocation_id': None}
        if keep_right:
            conflict.start_date, conflict.end_date = right
            return {'allocation_id': conflict_id, 'action': ACTION_MOVED, 'new_allocation_id': None}

        detach_allocation(session, conflict)
        return {'allocation_id': conflict_id, 'action': ACTION_DELETED, 'new_allocation_id': None}

    if cs < new_start:
        if _valid_window(*left):
            conflict.end_date = left[1]
            return {'allocation_id': conflict_id, 'action': ACTION_TRIMMED_END, 'new_allocation_id': None}
        detach_allocation(session, conflict)
        return {'allocation_id': conflict_id, 'action': ACTION_DELETED, 'new_allocation_id': None}

    # Remaining case: the conflict starts inside the window and runs past its end
    if _valid_window(*right):
        conflict.start_date = right[0]
        return {'allocation_id': conflict_id, 'action': ACTION_TRIMMED_START, 'new_allocation_id': None}
    detach_allocation(session, conflict)
    return {'allocation_id': conflict_id, 'action': ACTION_DELETED, 'new_allocation_id': None}


def resolve_conflicts(session, conflicts, new_start, new_end):
    """
    Trim, split or delete every conflict so [new_start, new_end] is free.

    The conflicts must already have passed evaluate_override_policy. Runs in
    the caller's transaction and only flushes; committing or rolling back is
    left to the caller.

    Returns:
        list: one action record per conflict
    """
    actions = []
    for conflict in conflicts:
        action = _resolve_one(session, conflict, new_start, new_end)
        logger.info(
            f"Resolved allocation {action['allocation_id']}: {action['action']}",
            extra={'new_allocation_id': action['new_allocation_id']}
        )
        actions.append(action)

    session.flush()
    return actions
