"""
Workforce models: employees, shifts and shift assignments
Shift assignments in an approved state define who is scheduled on a day.
"""
import uuid
from datetime import datetime, timezone


def _uuid():
    return str(uuid.uuid4())


def create_workforce_models(db):
    """Factory function to create Employee, Shift and ShiftAssignment models"""

    class Employee(db.Model):
        """
        Employee record

        Attributes:
            id: Worker id (the identity completions are credited to)
            user_id: Account id of the employee's login, if any
            profile_id: Legacy profile id some older surfaces stored
            role: Role name as entered by managers
        """
        __tablename__ = 'employees'

        id = db.Column(db.String(36), primary_key=True, default=_uuid)
        full_name = db.Column(db.String(120), nullable=False)
        role = db.Column(db.String(80), nullable=True)
        location_id = db.Column(db.String(36), nullable=True)
        user_id = db.Column(db.String(36), nullable=True, unique=True)
        profile_id = db.Column(db.String(36), nullable=True)
        is_active = db.Column(db.Boolean, nullable=False, default=True)
        created_at = db.Column(db.DateTime(timezone=True), nullable=False,
                               default=lambda: datetime.now(timezone.utc))

        __table_args__ = (
            db.Index('idx_employees_location', 'location_id'),
        )

        def __repr__(self):
            return f'<Employee {self.id}: {self.full_name}>'

    class Shift(db.Model):
        """Published shift at a location on a calendar day"""
        __tablename__ = 'shifts'

        id = db.Column(db.String(36), primary_key=True, default=_uuid)
        location_id = db.Column(db.String(36), nullable=False)
        shift_date = db.Column(db.Date, nullable=False)
        start_time = db.Column(db.Time, nullable=True)
        end_time = db.Column(db.Time, nullable=True)
        role = db.Column(db.String(80), nullable=True)
        role_id = db.Column(db.String(36), nullable=True)
        is_published = db.Column(db.Boolean, nullable=False, default=True)

        assignments = db.relationship('ShiftAssignment', backref='shift', lazy='selectin')

        __table_args__ = (
            db.Index('idx_shifts_date_location', 'shift_date', 'location_id'),
        )

        def __repr__(self):
            return f'<Shift {self.shift_date} {self.location_id} {self.role}>'

    class ShiftAssignment(db.Model):
        """Assignment of an employee to a shift"""
        __tablename__ = 'shift_assignments'

        id = db.Column(db.String(36), primary_key=True, default=_uuid)
        shift_id = db.Column(db.String(36), db.ForeignKey('shifts.id'), nullable=False)
        staff_id = db.Column(db.String(36), db.ForeignKey('employees.id'), nullable=False)
        approval_status = db.Column(db.String(20), nullable=False, default='pending')

        employee = db.relationship('Employee')

        def __repr__(self):
            return f'<ShiftAssignment {self.staff_id} -> {self.shift_id} ({self.approval_status})>'

    return Employee, Shift, ShiftAssignment
