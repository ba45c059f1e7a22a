"""
Unit tests for the allocation store
"""

import pytest
from datetime import date
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from contextlib import contextmanager

from sqlalchemy import event
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

import allocations
from allocations import AllocationStore
from errors import ConflictError, NotFoundError, PersistenceError, ValidationError
from app import create_app
from models import db, Employee, Project, Allocation, Task, phase_set_key


@pytest.fixture
def app():
    """Create and configure a test app instance."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def test_data(app):
    """Create employees and projects with phases."""
    with app.app_context():
        employee = Employee(full_name="Ada Mensah", email="ada@example.com")
        other = Employee(full_name="Kofi Boateng", email="kofi@example.com")
        portal = Project(
            name="Customer Portal",
            status="on going",
            phases=[{'id': 'design'}, {'id': 'build'}, {'id': 'launch'}]
        )
        billing = Project(
            name="Billing Migration",
            status="planned",
            phases=[{'id': 'analysis'}, {'id': 'cutover'}]
        )
        db.session.add_all([employee, other, portal, billing])
        db.session.commit()

        return {
            'employee_id': employee.id,
            'other_employee_id': other.id,
            'project_id': portal.id,
            'planned_project_id': billing.id
        }


def booking(test_data, start, end, phases=('build',), **extra):
    data = {
        'employee_id': test_data['employee_id'],
        'project_id': test_data['project_id'],
        'phases': list(phases),
        'start_date': start,
        'end_date': end,
        'hours_week': 40
    }
    data.update(extra)
    return data


def phase_members(project_id):
    db.session.expire_all()
    project = db.session.get(Project, project_id)
    return {phase.id: phase.members for phase in project.phases}


def employee_assigned(employee_id):
    db.session.expire_all()
    return db.session.get(Employee, employee_id).assigned


@contextmanager
def employee_selects(session):
    """Collect the employee SELECTs a session runs, rendered for PostgreSQL"""
    statements = []

    def capture(state):
        mapper = state.bind_mapper
        if state.is_select and mapper is not None and mapper.class_ is Employee:
            statements.append(str(state.statement.compile(dialect=postgresql.dialect())))

    event.listen(session, "do_orm_execute", capture)
    try:
        yield statements
    finally:
        event.remove(session, "do_orm_execute", capture)


def snapshot():
    db.session.expire_all()
    return sorted(
        (allocation.id, allocation.start_date, allocation.end_date, allocation.normalized_phase_ids)
        for allocation in Allocation.query.all()
    )


class TestCreateAllocation:
    """Test cases for creating allocations"""

    def test_create_and_get(self, app, test_data):
        """Test that create then get returns the same phase set"""
        with app.app_context():
            store = AllocationStore()
            created = store.create_allocation(
                booking(test_data, '2024-01-01', '2024-01-31', phases=['launch', 'build'])
            )

            fetched = store.get_allocation(created.id)
            assert set(fetched.phases) == {'build', 'launch'}
            assert fetched.normalized_phase_ids == phase_set_key(['launch', 'build'])
            assert fetched.start_date == date(2024, 1, 1)
            assert fetched.end_date == date(2024, 1, 31)
            assert fetched.hours_week == 40.0
            assert fetched.status == 'active'

    def test_create_updates_aggregates(self, app, test_data):
        """Test that members and the assigned flag follow a new booking"""
        with app.app_context():
            AllocationStore().create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['design', 'build'])
            )
            assert phase_members(test_data['project_id']) == {'design': 1, 'build': 1, 'launch': 0}
            assert employee_assigned(test_data['employee_id']) is True

    @pytest.mark.parametrize('phases', [[], 'build', [''], None])
    def test_invalid_phases(self, app, test_data, phases):
        """Test that a malformed phase set is rejected"""
        with app.app_context():
            data = booking(test_data, date(2024, 1, 1), date(2024, 1, 31))
            data['phases'] = phases
            with pytest.raises(ValidationError):
                AllocationStore().create_allocation(data)
            assert Allocation.query.count() == 0

    def test_end_not_after_start(self, app, test_data):
        """Test that end <= start is rejected"""
        with app.app_context():
            with pytest.raises(ValidationError):
                AllocationStore().create_allocation(booking(test_data, date(2024, 1, 31), date(2024, 1, 31)))
            with pytest.raises(ValidationError):
                AllocationStore().create_allocation(booking(test_data, date(2024, 2, 1), date(2024, 1, 1)))

    def test_unknown_phase(self, app, test_data):
        """Test that phases must exist on the project"""
        with app.app_context():
            with pytest.raises(ValidationError) as exc_info:
                AllocationStore().create_allocation(
                    booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['build', 'qa'])
                )
            assert exc_info.value.field == 'phases'
            assert phase_members(test_data['project_id'])['build'] == 0

    def test_missing_employee(self, app, test_data):
        """Test that an unknown employee is a NotFoundError"""
        with app.app_context():
            data = booking(test_data, date(2024, 1, 1), date(2024, 1, 31))
            data['employee_id'] = 9999
            with pytest.raises(NotFoundError) as exc_info:
                AllocationStore().create_allocation(data)
            assert exc_info.value.status_code == 404

    def test_missing_project(self, app, test_data):
        """Test that an unknown project is a NotFoundError"""
        with app.app_context():
            data = booking(test_data, date(2024, 1, 1), date(2024, 1, 31))
            data['project_id'] = 9999
            with pytest.raises(NotFoundError):
                AllocationStore().create_allocation(data)

    def test_duplicate_booking(self, app, test_data):
        """Test that the same employee, project and phase set cannot be booked twice"""
        with app.app_context():
            store = AllocationStore()
            first = store.create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['design', 'build'])
            )
            with pytest.raises(ConflictError) as exc_info:
                store.create_allocation(
                    booking(test_data, date(2024, 6, 1), date(2024, 6, 30), phases=['build', 'design'])
                )
            assert exc_info.value.blocking_ids == [first.id]
            assert Allocation.query.count() == 1

    def test_create_overrides_overlapping_booking(self, app, test_data):
        """Test that create trims an overridable overlap"""
        with app.app_context():
            store = AllocationStore()
            existing = store.create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['design'], can_override=True)
            )
            store.create_allocation(booking(test_data, date(2024, 1, 15), date(2024, 2, 15)))

            existing = store.get_allocation(existing.id)
            assert existing.end_date == date(2024, 1, 14)

    def test_create_blocked_by_protected_booking(self, app, test_data):
        """Test that create fails on a non-overridable overlap"""
        with app.app_context():
            store = AllocationStore()
            existing = store.create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['design'])
            )
            before = snapshot()
            with pytest.raises(ConflictError) as exc_info:
                store.create_allocation(booking(test_data, date(2024, 1, 15), date(2024, 2, 15)))
            assert exc_info.value.blocking_ids == [existing.id]
            assert snapshot() == before
            assert phase_members(test_data['project_id'])['build'] == 0

    def test_other_employee_is_not_a_conflict(self, app, test_data):
        """Test that overlaps are checked per employee"""
        with app.app_context():
            store = AllocationStore()
            store.create_allocation(booking(test_data, date(2024, 1, 1), date(2024, 1, 31)))
            other = booking(test_data, date(2024, 1, 1), date(2024, 1, 31))
            other['employee_id'] = test_data['other_employee_id']
            store.create_allocation(other)
            assert Allocation.query.count() == 2
            assert phase_members(test_data['project_id'])['build'] == 2


class TestUpdateAllocation:
    """Test cases for updating allocations"""

    def test_subsumed_scenario(self, app, test_data):
        """Test that a booking inside the new window is deleted"""
        with app.app_context():
            store = AllocationStore()
            x = store.create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['design'], can_override=True)
            )
            moving = store.create_allocation(booking(test_data, date(2024, 3, 1), date(2024, 3, 31)))
            x_id = x.id

            store.update_allocation(moving.id, {'start_date': '2023-12-01', 'end_date': '2024-02-15'})

            assert db.session.get(Allocation, x_id) is None
            assert Allocation.query.count() == 1
            assert phase_members(test_data['project_id']) == {'design': 0, 'build': 1, 'launch': 0}

    def test_overlap_start_scenario(self, app, test_data):
        """Test that an earlier booking is trimmed to end before the new window"""
        with app.app_context():
            store = AllocationStore()
            y = store.create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['design'], can_override=True)
            )
            moving = store.create_allocation(booking(test_data, date(2024, 5, 1), date(2024, 5, 31)))

            store.update_allocation(moving.id, {'start_date': date(2024, 1, 15), 'end_date': date(2024, 2, 15)})

            y = store.get_allocation(y.id)
            assert y.end_date == date(2024, 1, 14)
            moving = store.get_allocation(moving.id)
            assert (moving.start_date, moving.end_date) == (date(2024, 1, 15), date(2024, 2, 15))

    def test_split_scenario(self, app, test_data):
        """Test that a surrounding booking is split around the new window"""
        with app.app_context():
            store = AllocationStore()
            z = store.create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 3, 1), phases=['design'],
                        can_override=True, charge_out_rate=95.0, charge_type='hourly')
            )
            moving = store.create_allocation(booking(test_data, date(2024, 6, 1), date(2024, 6, 30)))

            store.update_allocation(moving.id, {'start_date': date(2024, 1, 15), 'end_date': date(2024, 1, 31)})

            rows = store.get_employee_allocations(test_data['employee_id'])
            windows = [(row.start_date, row.end_date) for row in rows]
            assert windows == [
                (date(2024, 1, 1), date(2024, 1, 14)),
                (date(2024, 1, 15), date(2024, 1, 31)),
                (date(2024, 2, 1), date(2024, 3, 1))
            ]
            clone = rows[2]
            assert clone.id not in (z.id, moving.id)
            assert clone.phases == ['design']
            assert clone.charge_out_rate == 95.0
            assert clone.charge_type == 'hourly'
            assert clone.can_override is True
            assert phase_members(test_data['project_id'])['design'] == 2

    def test_blocked_scenario(self, app, test_data):
        """Test that a protected overlap fails the update and changes nothing"""
        with app.app_context():
            store = AllocationStore()
            protected = store.create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['design'])
            )
            free = store.create_allocation(
                booking(test_data, date(2024, 2, 10), date(2024, 2, 20), phases=['launch'], can_override=True)
            )
            moving = store.create_allocation(booking(test_data, date(2024, 5, 1), date(2024, 5, 31)))
            before = snapshot()
            members_before = phase_members(test_data['project_id'])

            with pytest.raises(ConflictError) as exc_info:
                store.update_allocation(moving.id, {'start_date': date(2024, 1, 15), 'end_date': date(2024, 2, 28)})

            assert exc_info.value.blocking_ids == [protected.id]
            assert free.id not in exc_info.value.blocking_ids
            assert snapshot() == before
            assert phase_members(test_data['project_id']) == members_before

    def test_no_intersections_after_updates(self, app, test_data):
        """Test that an employee's bookings never intersect after writes"""
        with app.app_context():
            store = AllocationStore()
            store.create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 2, 28), phases=['design'], can_override=True)
            )
            store.create_allocation(
                booking(test_data, date(2024, 3, 1), date(2024, 4, 30), phases=['launch'], can_override=True)
            )
            moving = store.create_allocation(
                booking(test_data, date(2024, 6, 1), date(2024, 6, 30), can_override=True)
            )
            store.update_allocation(moving.id, {'start_date': date(2024, 2, 1), 'end_date': date(2024, 3, 15)})

            rows = store.get_employee_allocations(test_data['employee_id'])
            for index, first in enumerate(rows):
                assert first.start_date < first.end_date
                for second in rows[index + 1:]:
                    assert not (first.start_date < second.end_date and second.start_date < first.end_date)

    def test_phase_change_adjusts_members_by_delta(self, app, test_data):
        """Test that only added and removed phases change members"""
        with app.app_context():
            store = AllocationStore()
            allocation = store.create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['design', 'build'])
            )
            store.update_allocation(allocation.id, {'phases': ['launch', 'build']})

            assert phase_members(test_data['project_id']) == {'design': 0, 'build': 1, 'launch': 1}
            allocation = store.get_allocation(allocation.id)
            assert allocation.normalized_phase_ids == phase_set_key(['build', 'launch'])

    def test_same_phase_set_in_other_order_is_no_change(self, app, test_data):
        """Test that reordering phases leaves members alone"""
        with app.app_context():
            store = AllocationStore()
            allocation = store.create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['design', 'build'])
            )
            store.update_allocation(allocation.id, {'phases': ['build', 'design']})
            assert phase_members(test_data['project_id']) == {'design': 1, 'build': 1, 'launch': 0}

    def test_update_plain_fields(self, app, test_data):
        """Test updating fields that do not move the booking"""
        with app.app_context():
            store = AllocationStore()
            allocation = store.create_allocation(booking(test_data, date(2024, 1, 1), date(2024, 1, 31)))
            store.update_allocation(allocation.id, {'hours_week': '20', 'charge_type': 'fixed', 'can_override': 1})

            allocation = store.get_allocation(allocation.id)
            assert allocation.hours_week == 20.0
            assert allocation.charge_type == 'fixed'
            assert allocation.can_override is True

    def test_update_invalid_range(self, app, test_data):
        """Test that moving the end before the start is rejected"""
        with app.app_context():
            store = AllocationStore()
            allocation = store.create_allocation(booking(test_data, date(2024, 1, 1), date(2024, 1, 31)))
            with pytest.raises(ValidationError):
                store.update_allocation(allocation.id, {'end_date': date(2023, 12, 31)})
            allocation = store.get_allocation(allocation.id)
            assert allocation.end_date == date(2024, 1, 31)

    def test_update_fixed_and_unknown_fields(self, app, test_data):
        """Test that the owner and unknown fields cannot be changed"""
        with app.app_context():
            store = AllocationStore()
            allocation = store.create_allocation(booking(test_data, date(2024, 1, 1), date(2024, 1, 31)))
            with pytest.raises(ValidationError) as exc_info:
                store.update_allocation(allocation.id, {'employee_id': test_data['other_employee_id']})
            assert exc_info.value.field == 'employee_id'
            with pytest.raises(ValidationError):
                store.update_allocation(allocation.id, {'colour': 'blue'})

    def test_update_missing_allocation(self, app, test_data):
        """Test that updating an unknown id is a NotFoundError"""
        with app.app_context():
            with pytest.raises(NotFoundError):
                AllocationStore().update_allocation(9999, {'hours_week': 10})


class TestDeleteAllocation:
    """Test cases for deleting allocations"""

    def test_delete_only_allocation_clears_assigned(self, app, test_data):
        """Test that deleting the last booking unassigns the employee"""
        with app.app_context():
            store = AllocationStore()
            allocation = store.create_allocation(booking(test_data, date(2024, 1, 1), date(2024, 1, 31)))
            store.delete_allocation(allocation.id)

            assert employee_assigned(test_data['employee_id']) is False
            assert Allocation.query.count() == 0

    def test_delete_one_of_two_keeps_assigned(self, app, test_data):
        """Test that an employee with another booking stays assigned"""
        with app.app_context():
            store = AllocationStore()
            first = store.create_allocation(booking(test_data, date(2024, 1, 1), date(2024, 1, 31)))
            store.create_allocation(
                booking(test_data, date(2024, 3, 1), date(2024, 3, 31), phases=['launch'])
            )
            store.delete_allocation(first.id)

            assert employee_assigned(test_data['employee_id']) is True

    def test_delete_decrements_only_referenced_phases(self, app, test_data):
        """Test that members drop by one on the deleted booking's phases"""
        with app.app_context():
            store = AllocationStore()
            first = store.create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['design', 'build'])
            )
            other = booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['build', 'launch'])
            other['employee_id'] = test_data['other_employee_id']
            store.create_allocation(other)
            assert phase_members(test_data['project_id']) == {'design': 1, 'build': 2, 'launch': 1}

            store.delete_allocation(first.id)
            assert phase_members(test_data['project_id']) == {'design': 0, 'build': 1, 'launch': 1}

    def test_delete_cascades_tasks(self, app, test_data):
        """Test that an allocation's tasks go with it"""
        with app.app_context():
            store = AllocationStore()
            allocation = store.create_allocation(booking(test_data, date(2024, 1, 1), date(2024, 1, 31)))
            task = Task(
                allocation_id=allocation.id,
                employee_id=test_data['employee_id'],
                project_id=test_data['project_id'],
                phase_id='build',
                title='Write migrations',
                task_date=date(2024, 1, 10)
            )
            db.session.add(task)
            db.session.commit()

            store.delete_allocation(allocation.id)
            assert Task.query.count() == 0

    def test_delete_missing_allocation(self, app, test_data):
        """Test that deleting an unknown id is a NotFoundError"""
        with app.app_context():
            with pytest.raises(NotFoundError):
                AllocationStore().delete_allocation(9999)


class TestEmployeeRowLock:
    """Test cases for serializing writes on the employee row"""

    def test_create_locks_employee(self, app, test_data):
        """Test that create loads the employee with FOR UPDATE"""
        with app.app_context():
            session = db.session()
            store = AllocationStore(session=session)
            with employee_selects(session) as statements:
                store.create_allocation(booking(test_data, date(2024, 1, 1), date(2024, 1, 31)))
            assert any('FOR UPDATE' in sql for sql in statements)

    def test_update_and_delete_lock_employee(self, app, test_data):
        """Test that update and delete take the same lock"""
        with app.app_context():
            session = db.session()
            store = AllocationStore(session=session)
            allocation = store.create_allocation(booking(test_data, date(2024, 1, 1), date(2024, 1, 31)))
            allocation_id = allocation.id

            with employee_selects(session) as statements:
                store.update_allocation(allocation_id, {'end_date': date(2024, 2, 15)})
            assert any('FOR UPDATE' in sql for sql in statements)

            with employee_selects(session) as statements:
                store.delete_allocation(allocation_id)
            assert any('FOR UPDATE' in sql for sql in statements)

    def test_lock_can_be_switched_off(self, app, test_data):
        """Test that SERIALIZE_EMPLOYEE_WRITES=False drops the lock"""
        with app.app_context():
            app.config['SERIALIZE_EMPLOYEE_WRITES'] = False
            session = db.session()
            store = AllocationStore(session=session)
            with employee_selects(session) as statements:
                store.create_allocation(booking(test_data, date(2024, 1, 1), date(2024, 1, 31)))
            assert statements
            assert not any('FOR UPDATE' in sql for sql in statements)


class TestPersistenceFailures:
    """Test cases for store failures inside a unit of work"""

    def test_failure_rolls_back_resolved_conflicts(self, app, test_data, monkeypatch):
        """Test that a store failure after resolution undoes the trim"""
        with app.app_context():
            store = AllocationStore()
            existing = store.create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['design'], can_override=True)
            )
            before = snapshot()

            def failing_attach(session, allocation):
                raise OperationalError("INSERT INTO allocations", {}, Exception("disk I/O error"))

            monkeypatch.setattr(allocations, 'attach_allocation', failing_attach)

            with pytest.raises(PersistenceError) as exc_info:
                store.create_allocation(booking(test_data, date(2024, 1, 15), date(2024, 2, 15)))
            assert exc_info.value.status_code == 503

            assert snapshot() == before
            assert store.get_allocation(existing.id).end_date == date(2024, 1, 31)
            assert phase_members(test_data['project_id'])['design'] == 1


class TestAllocationQueries:
    """Test cases for allocation reads"""

    def test_active_only_filters_by_project_status(self, app, test_data):
        """Test that bookings on planned projects are left out of the active view"""
        with app.app_context():
            store = AllocationStore()
            active = store.create_allocation(booking(test_data, date(2024, 1, 1), date(2024, 1, 31)))
            planned = booking(test_data, date(2024, 3, 1), date(2024, 3, 31), phases=['analysis'])
            planned['project_id'] = test_data['planned_project_id']
            store.create_allocation(planned)

            assert len(store.get_employee_allocations(test_data['employee_id'])) == 2
            active_rows = store.get_employee_allocations(test_data['employee_id'], active_only=True)
            assert [row.id for row in active_rows] == [active.id]

    def test_active_statuses_come_from_config(self, app, test_data):
        """Test that ACTIVE_PROJECT_STATUSES drives the active view"""
        with app.app_context():
            app.config['ACTIVE_PROJECT_STATUSES'] = ['planned']
            store = AllocationStore()
            store.create_allocation(booking(test_data, date(2024, 1, 1), date(2024, 1, 31)))
            planned = booking(test_data, date(2024, 3, 1), date(2024, 3, 31), phases=['analysis'])
            planned['project_id'] = test_data['planned_project_id']
            planned_row = store.create_allocation(planned)

            active_rows = store.get_employee_allocations(test_data['employee_id'], active_only=True)
            assert [row.id for row in active_rows] == [planned_row.id]

    def test_project_and_phase_allocations(self, app, test_data):
        """Test the project view and the phase membership filter"""
        with app.app_context():
            store = AllocationStore()
            design_build = store.create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['design', 'build'])
            )
            other = booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['launch'])
            other['employee_id'] = test_data['other_employee_id']
            launch = store.create_allocation(other)

            project_rows = store.get_project_allocations(test_data['project_id'])
            assert {row.id for row in project_rows} == {design_build.id, launch.id}
            assert [row.id for row in store.get_phase_allocations(test_data['project_id'], 'build')] == [design_build.id]
            assert [row.id for row in store.get_phase_allocations(test_data['project_id'], 'launch')] == [launch.id]
            assert store.get_phase_allocations(test_data['project_id'], 'missing') == []

    def test_find_existing_allocation(self, app, test_data):
        """Test lookup by the order-independent booking key"""
        with app.app_context():
            store = AllocationStore()
            created = store.create_allocation(
                booking(test_data, date(2024, 1, 1), date(2024, 1, 31), phases=['design', 'build'])
            )
            found = store.find_existing_allocation(
                test_data['employee_id'], test_data['project_id'], ['build', 'design']
            )
            assert found.id == created.id
            assert store.find_existing_allocation(
                test_data['employee_id'], test_data['project_id'], ['build']
            ) is None

    def test_get_missing_allocation(self, app, test_data):
        """Test that get raises NotFoundError for an unknown id"""
        with app.app_context():
            with pytest.raises(NotFoundError):
                AllocationStore().get_allocation(9999)

    def test_preview_conflicts(self, app, test_data):
        """Test the dry run leaves bookings untouched"""
        with app.app_context():
            store = AllocationStore()
            inside = store.create_allocation(
                booking(test_data, date(2024, 1, 10), date(2024, 1, 20), phases=['design'], can_override=True)
            )
            protected = store.create_allocation(
                booking(test_data, date(2024, 1, 25), date(2024, 2, 28), phases=['launch'])
            )
            before = snapshot()

            preview = store.preview_conflicts(test_data['employee_id'], '2024-01-01', '2024-02-01')
            assert preview['can_override'] is False
            assert preview['blocking_ids'] == [protected.id]
            assert [row['id'] for row in preview['would_delete']] == [inside.id]
            assert [row['id'] for row in preview['would_modify']] == [protected.id]
            assert snapshot() == before

    def test_preview_conflicts_missing_employee(self, app, test_data):
        """Test that previewing for an unknown employee is a NotFoundError"""
        with app.app_context():
            with pytest.raises(NotFoundError):
                AllocationStore().preview_conflicts(9999, date(2024, 1, 1), date(2024, 1, 31))
