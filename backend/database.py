from datetime import date

from db import db
from models import Employee, Project, Allocation, Task


def init_db():
    """Initialize the database and create all tables"""
    # Models are imported above so every table is registered with SQLAlchemy
    db.create_all()
    print("Database initialized successfully")


def seed_database():
    """Seed the database with sample employees and projects for development"""
    # Check if data already exists
    if Employee.query.first():
        print("Database already seeded")
        return

    employees_data = [
        {'full_name': 'Ada Mensah', 'email': 'ada.mensah@example.com', 'position': 'Backend Engineer'},
        {'full_name': 'Kofi Boateng', 'email': 'kofi.boateng@example.com', 'position': 'Frontend Engineer'},
        {'full_name': 'Lena Novak', 'email': 'lena.novak@example.com', 'position': 'Designer'},
        {'full_name': 'Ravi Iyer', 'email': 'ravi.iyer@example.com', 'position': 'QA Engineer'},
    ]

    projects_data = [
        {
            'name': 'Customer Portal',
            'status': 'on going',
            'start_date': date(2024, 1, 1),
            'end_date': date(2024, 6, 30),
            'phases': [
                {'id': 'discovery', 'name': 'Discovery', 'start_date': '2024-01-01', 'end_date': '2024-01-31'},
                {'id': 'build', 'name': 'Build', 'start_date': '2024-02-01', 'end_date': '2024-05-31'},
                {'id': 'launch', 'name': 'Launch', 'start_date': '2024-06-01', 'end_date': '2024-06-30'},
            ]
        },
        {
            'name': 'Billing Migration',
            'status': 'planned',
            'start_date': date(2024, 4, 1),
            'end_date': date(2024, 9, 30),
            'phases': [
                {'id': 'analysis', 'name': 'Analysis'},
                {'id': 'cutover', 'name': 'Cutover'},
            ]
        },
    ]

    employees = [Employee(**data) for data in employees_data]
    projects = [Project(**data) for data in projects_data]
    db.session.add_all(employees + projects)
    db.session.commit()

    # Bookings go through the store so phase members and assigned flags stay consistent
    from allocations import AllocationStore
    store = AllocationStore()
    portal = projects[0]
    first = store.create_allocation({
        'employee_id': employees[0].id,
        'project_id': portal.id,
        'phases': ['discovery', 'build'],
        'start_date': date(2024, 1, 1),
        'end_date': date(2024, 3, 31),
        'hours_week': 40,
        'can_override': True
    })
    store.create_allocation({
        'employee_id': employees[1].id,
        'project_id': portal.id,
        'phases': ['build'],
        'start_date': date(2024, 2, 1),
        'end_date': date(2024, 5, 31),
        'hours_week': 32
    })

    from tasks import create_task
    create_task({
        'allocation_id': first.id,
        'phase_id': 'discovery',
        'title': 'Stakeholder interviews',
        'task_date': date(2024, 1, 10),
        'status': Task.STATUS_COMPLETED,
        'estimated_hours': 16,
        'actual_hours': 14
    })

    print(f"Database seeded with {Employee.query.count()} employees, "
          f"{Project.query.count()} projects and {Allocation.query.count()} allocations")
