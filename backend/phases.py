"""
Project phase aggregates and the task queries they depend on.

``members`` is moved by +1/-1 on every allocation write and is never
recounted. ``number_of_tasks`` and ``completion_rate`` are re-derived from
the task table every time something that affects them changes. The two
strategies are independent and nothing reconciles them.
"""

import logging
import math

from models import Project, Task

logger = logging.getLogger(__name__)


def count_phase_tasks(session, project_id, phase_id):
    """Number of tasks logged against one project phase"""
    return session.query(Task).filter(
        Task.project_id == project_id,
        Task.phase_id == phase_id
    ).count()


def count_phase_tasks_by_status(session, project_id, phase_id, status):
    """Number of tasks in a project phase with the given status"""
    return session.query(Task).filter(
        Task.project_id == project_id,
        Task.phase_id == phase_id,
        Task.status == status
    ).count()


def delete_allocation_tasks(session, allocation_id):
    """
    Delete every task that belongs to an allocation.

    Returns:
        set: (project_id, phase_id) pairs whose completion rate is now stale
    """
    tasks = session.query(Task).filter(Task.allocation_id == allocation_id).all()
    touched = set()
    for task in tasks:
        touched.add((task.project_id, task.phase_id))
        session.delete(task)
    if tasks:
        session.flush()
        logger.info(f"Deleted {len(tasks)} task(s) of allocation {allocation_id}")
    return touched


def adjust_phase_members(project, added=(), removed=()):
    """
    Apply a membership delta to a project's phases.

    Args:
        project: Project whose phase list is rewritten
        added: phase ids gaining one allocation
        removed: phase ids losing one allocation (floored at zero)

    Phase ids the project does not define are skipped.
    """
    added = set(added)
    removed = set(removed)
    if not added and not removed:
        return

    phases = []
    for phase in project.phases:
        members = phase.members
        if phase.id in added:
            members += 1
        if phase.id in removed:
            members = max(0, members - 1)
        phases.append(phase.copy(members=members) if members != phase.members else phase)

    unknown = (added | removed) - set(project.phase_ids)
    if unknown:
        logger.warning(f"Project {project.id} has no phase(s) {sorted(unknown)}; members left untouched")

    project.replace_phases(phases)


def completion_rate(completed, total):
    """Percentage of completed tasks rounded half up, 0 for an empty phase"""
    if total <= 0:
        return 0
    return int(math.floor(completed / total * 100 + 0.5))


def recompute_completion_rates(session, project_id, phase_ids):
    """
    Re-derive number_of_tasks and completion_rate for the given phases.

    Returns:
        Project or None: the updated project, None when it does not exist
    """
    project = session.get(Project, project_id)
    if project is None:
        return None

    phase_ids = set(phase_ids)
    phases = []
    for phase in project.phases:
        if phase.id not in phase_ids:
            phases.append(phase)
            continue
        total = count_phase_tasks(session, project_id, phase.id)
        completed = count_phase_tasks_by_status(session, project_id, phase.id, Task.STATUS_COMPLETED)
        phases.append(phase.copy(
            number_of_tasks=total,
            completion_rate=completion_rate(completed, total)
        ))

    project.replace_phases(phases)
    return project


def recompute_for_pairs(session, pairs):
    """Recompute completion rates for a set of (project_id, phase_id) pairs"""
    by_project = {}
    for project_id, phase_id in pairs:
        by_project.setdefault(project_id, set()).add(phase_id)
    for project_id, phase_ids in by_project.items():
        recompute_completion_rates(session, project_id, phase_ids)


def attach_allocation(session, allocation):
    """Persist a new allocation row and count it on its project's phases"""
    session.add(allocation)
    project = session.get(Project, allocation.project_id)
    if project is not None:
        adjust_phase_members(project, added=allocation.phases)
    session.flush()
    return allocation


def detach_allocation(session, allocation):
    """
    Delete an allocation row together with its tasks.

    Members drop by one on every phase the allocation referenced and the
    completion rate of those phases (and of any phase a deleted task sat in)
    is re-derived.
    """
    touched = delete_allocation_tasks(session, allocation.id)
    touched.update((allocation.project_id, phase_id) for phase_id in allocation.phases)

    project = session.get(Project, allocation.project_id)
    if project is not None:
        adjust_phase_members(project, removed=allocation.phases)

    session.delete(allocation)
    session.flush()
    recompute_for_pairs(session, touched)
