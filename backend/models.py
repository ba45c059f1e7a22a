from dataclasses import dataclass, asdict, replace
from datetime import datetime, date, timezone
import json

from sqlalchemy.orm import validates
from sqlalchemy.types import TypeDecorator

from db import db
from errors import ValidationError


def utc_now():
    """Return current UTC time (timezone-aware)"""
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


def _from_iso(value):
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


def normalize_phase_ids(phase_ids):
    """
    Validate a phase set and return it as a sorted list.

    Phases are a set of non-empty string identifiers. Lists, tuples and sets
    are accepted; duplicates are rejected since they point at a caller bug.
    """
    if isinstance(phase_ids, (str, bytes)) or not isinstance(phase_ids, (list, tuple, set, frozenset)):
        raise ValidationError("phases must be a non-empty collection of phase ids", 'phases')
    if not phase_ids:
        raise ValidationError("phases must be a non-empty collection of phase ids", 'phases')

    cleaned = []
    for phase_id in phase_ids:
        if not isinstance(phase_id, str) or not phase_id.strip():
            raise ValidationError("Every phase id must be a non-empty string", 'phases')
        cleaned.append(phase_id)

    if len(set(cleaned)) != len(cleaned):
        raise ValidationError("phases must not contain duplicate ids", 'phases')

    return sorted(cleaned)


def phase_set_key(phase_ids):
    """Canonical serialized form of a phase set, used as the duplicate-booking key"""
    return json.dumps(normalize_phase_ids(phase_ids))


@dataclass(frozen=True)
class Phase:
    """One phase of a project plan, embedded in Project.phases"""
    id: str
    name: str = ''
    start_date: date = None
    end_date: date = None
    members: int = 0
    number_of_tasks: int = 0
    completion_rate: int = 0

    def validate(self):
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValidationError("Phase id must be a non-empty string", 'phases')
        if self.members < 0:
            raise ValidationError(f"Phase {self.id} members cannot be negative", 'phases')
        if self.number_of_tasks < 0:
            raise ValidationError(f"Phase {self.id} number_of_tasks cannot be negative", 'phases')
        if not 0 <= self.completion_rate <= 100:
            raise ValidationError(f"Phase {self.id} completion_rate must be between 0 and 100", 'phases')
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValidationError(f"Phase {self.id} end_date must not be before start_date", 'phases')

    def copy(self, **changes):
        return replace(self, **changes)

    def to_dict(self):
        data = asdict(self)
        data['start_date'] = _iso(self.start_date)
        data['end_date'] = _iso(self.end_date)
        return data

    @classmethod
    def from_dict(cls, data):
        if isinstance(data, cls):
            return data
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            start_date=_from_iso(data.get('start_date')),
            end_date=_from_iso(data.get('end_date')),
            members=int(data.get('members', 0)),
            number_of_tasks=int(data.get('number_of_tasks', 0)),
            completion_rate=int(data.get('completion_rate', 0)),
        )


class PhaseList(TypeDecorator):
    """Stores a list of Phase records as a JSON array"""
    impl = db.JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return []
        return [Phase.from_dict(phase).to_dict() for phase in value]

    def process_result_value(self, value, dialect):
        if not value:
            return []
        return [Phase.from_dict(phase) for phase in value]


class Employee(db.Model):
    """Employee that can be booked against project phases"""
    __tablename__ = 'employees'

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(150), unique=True, nullable=True)
    position = db.Column(db.String(100), nullable=True)
    assigned = db.Column(db.Boolean, nullable=False, default=False)
    # Cache rebuilt by utilization.calculate_utilization
    utilization = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    allocations = db.relationship('Allocation', backref='employee', lazy=True)

    def __init__(self, full_name, email=None, position=None, assigned=False):
        self.full_name = full_name
        self.email = email
        self.position = position
        self.assigned = assigned
        self.utilization = {}

    def to_dict(self):
        """Convert employee to dictionary"""
        return {
            'id': self.id,
            'full_name': self.full_name,
            'email': self.email,
            'position': self.position,
            'assigned': self.assigned,
            'utilization': self.utilization or {},
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class Project(db.Model):
    """Project with its embedded list of phases"""
    __tablename__ = 'projects'

    STATUSES = ['planned', 'on going', 'on hold', 'completed', 'cancelled']

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), unique=True, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='planned')
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    phases = db.Column(PhaseList, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    allocations = db.relationship('Allocation', backref='project', lazy=True)

    def __init__(self, name, status='planned', start_date=None, end_date=None, phases=None):
        self.name = name
        self.status = status
        self.start_date = start_date
        self.end_date = end_date
        self.phases = phases or []

    @validates('phases')
    def validate_phases(self, key, phases):
        """Every write of the phase list is checked and stored as a fresh copy"""
        checked = [Phase.from_dict(phase) for phase in (phases or [])]
        seen = set()
        for phase in checked:
            phase.validate()
            if phase.id in seen:
                raise ValidationError(f"Duplicate phase id {phase.id}", 'phases')
            seen.add(phase.id)
        return checked

    def get_phase(self, phase_id):
        """Return the phase with the given id, or None"""
        return next((phase for phase in self.phases if phase.id == phase_id), None)

    @property
    def phase_ids(self):
        return [phase.id for phase in self.phases]

    def replace_phases(self, phases):
        """Write back a whole new phase list"""
        self.phases = list(phases)

    def to_dict(self):
        """Convert project to dictionary"""
        return {
            'id': self.id,
            'name': self.name,
            'status': self.status,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'phases': [phase.to_dict() for phase in self.phases],
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class Allocation(db.Model):
    """Booking of one employee on a set of project phases for a date range"""
    __tablename__ = 'allocations'
    __table_args__ = (
        db.Index('ix_allocations_employee_range', 'employee_id', 'start_date', 'end_date'),
        db.Index('ix_allocations_booking_key', 'employee_id', 'project_id', 'normalized_phase_ids'),
    )

    # Fields copied onto the second half of a split booking
    CLONED_FIELDS = ('employee_id', 'project_id', 'phases', 'hours_week', 'status',
                     'charge_out_rate', 'charge_type', 'can_override')

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employees.id'), nullable=False)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False)
    phases = db.Column(db.JSON, nullable=False)
    normalized_phase_ids = db.Column(db.String(1000), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    hours_week = db.Column(db.Float, nullable=False, default=40.0)
    status = db.Column(db.String(30), nullable=False, default='active')
    charge_out_rate = db.Column(db.Float, nullable=True)
    charge_type = db.Column(db.String(30), nullable=True)
    can_override = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    tasks = db.relationship('Task', backref='allocation', lazy=True, cascade='all, delete-orphan')

    def __init__(self, employee_id, project_id, phases, start_date, end_date, hours_week=40.0,
                 status='active', charge_out_rate=None, charge_type=None, can_override=False):
        self.employee_id = employee_id
        self.project_id = project_id
        self.phases = phases
        self.start_date = start_date
        self.end_date = end_date
        self.hours_week = hours_week
        self.status = status
        self.charge_out_rate = charge_out_rate
        self.charge_type = charge_type
        self.can_override = can_override

    @validates('phases')
    def validate_phases(self, key, phases):
        """Keep normalized_phase_ids in step with every phase write"""
        normalized = normalize_phase_ids(phases)
        self.normalized_phase_ids = json.dumps(normalized)
        return normalized

    @property
    def phase_set(self):
        return frozenset(self.phases or [])

    @property
    def duration_days(self):
        return (self.end_date - self.start_date).days

    def clone(self, start_date, end_date):
        """New allocation with the same booking details over another window"""
        fields = {name: getattr(self, name) for name in self.CLONED_FIELDS}
        fields['phases'] = list(self.phases)
        return Allocation(start_date=start_date, end_date=end_date, **fields)

    def to_dict(self):
        """Convert allocation to dictionary"""
        return {
            'id': self.id,
            'employee_id': self.employee_id,
            'project_id': self.project_id,
            'phases': list(self.phases or []),
            'normalized_phase_ids': self.normalized_phase_ids,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'hours_week': self.hours_week,
            'status': self.status,
            'charge_out_rate': self.charge_out_rate,
            'charge_type': self.charge_type,
            'can_override': self.can_override,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class Task(db.Model):
    """Work logged by an employee against one phase of an allocation"""
    __tablename__ = 'tasks'

    STATUS_PENDING = 'pending'
    STATUS_IN_PROGRESS = 'in-progress'
    STATUS_COMPLETED = 'completed'
    STATUS_REJECTED = 'rejected'

    STATUSES = [STATUS_PENDING, STATUS_IN_PROGRESS, STATUS_COMPLETED, STATUS_REJECTED]

    id = db.Column(db.Integer, primary_key=True)
    allocation_id = db.Column(db.Integer, db.ForeignKey('allocations.id', ondelete='CASCADE'),
                              nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employees.id'), nullable=False, index=True)
    project_id = db.Column(db.Integer, db.ForeignKey('projects.id'), nullable=False)
    phase_id = db.Column(db.String(100), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    estimated_hours = db.Column(db.Float, nullable=False, default=0.0)
    actual_hours = db.Column(db.Float, nullable=False, default=0.0)
    task_date = db.Column(db.Date, nullable=False)
    reason_for_rejection = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        db.Index('ix_tasks_project_phase', 'project_id', 'phase_id'),
    )

    def __init__(self, allocation_id, employee_id, project_id, phase_id, title, task_date,
                 description=None, status=STATUS_PENDING, estimated_hours=0.0, actual_hours=0.0):
        self.allocation_id = allocation_id
        self.employee_id = employee_id
        self.project_id = project_id
        self.phase_id = phase_id
        self.title = title
        self.task_date = task_date
        self.description = description
        self.status = status
        self.estimated_hours = estimated_hours
        self.actual_hours = actual_hours

    def to_dict(self):
        """Convert task to dictionary"""
        return {
            'id': self.id,
            'allocation_id': self.allocation_id,
            'employee_id': self.employee_id,
            'project_id': self.project_id,
            'phase_id': self.phase_id,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'estimated_hours': self.estimated_hours,
            'actual_hours': self.actual_hours,
            'task_date': _iso(self.task_date),
            'reason_for_rejection': self.reason_for_rejection,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }
