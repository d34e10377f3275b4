"""
Recurrence rule and materialized occurrence models
A rule describes a recurring audit, maintenance intervention or notification;
each materialized occurrence is one dated instance of it.
"""
import uuid
from datetime import datetime, timezone


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def create_recurrence_models(db):
    """Factory function to create RecurrenceRule and Occurrence models with db instance"""

    class RecurrenceRule(db.Model):
        """
        Recurring schedule for audits, maintenance or notifications

        Attributes:
            id: UUID of the rule
            rule_type: audit, maintenance or notification
            pattern: daily, weekly, monthly, quarterly, yearly, every_4_weeks
            anchor_date: First day of the rule (covered by the rule itself)
            day_of_week: For weekly patterns (0=Monday, 6=Sunday)
            day_of_month: For monthly/quarterly/yearly patterns (1-31)
            start_time: Local start time of each occurrence
            duration_minutes: Length of each occurrence
            end_date: Optional last day the rule may generate for
            last_generated_date: Date of the last materialized occurrence
        """
        __tablename__ = 'recurrence_rules'

        id = db.Column(db.String(36), primary_key=True, default=_uuid)
        rule_type = db.Column(db.String(20), nullable=False)
        name = db.Column(db.String(200), nullable=False)
        location_id = db.Column(db.String(36), nullable=True)
        pattern = db.Column(db.String(20), nullable=False)
        anchor_date = db.Column(db.Date, nullable=True)
        day_of_week = db.Column(db.Integer, nullable=True)
        day_of_month = db.Column(db.Integer, nullable=True)
        start_time = db.Column(db.Time, nullable=True)
        duration_minutes = db.Column(db.Integer, nullable=False, default=60)
        end_date = db.Column(db.Date, nullable=True)
        assigned_user_id = db.Column(db.String(36), nullable=True)
        is_active = db.Column(db.Boolean, nullable=False, default=True)
        last_generated_date = db.Column(db.Date, nullable=True)
        created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
        updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

        occurrences = db.relationship('Occurrence', backref='rule', lazy='dynamic')

        __table_args__ = (
            db.Index('idx_recurrence_rules_type_active', 'rule_type', 'is_active'),
        )

        RULE_TYPES = ['audit', 'maintenance', 'notification']

        def to_dict(self):
            """Convert to dictionary for JSON"""
            return {
                'id': self.id,
                'rule_type': self.rule_type,
                'name': self.name,
                'location_id': self.location_id,
                'pattern': self.pattern,
                'anchor_date': self.anchor_date.isoformat() if self.anchor_date else None,
                'day_of_week': self.day_of_week,
                'day_of_month': self.day_of_month,
                'start_time': self.start_time.strftime('%H:%M') if self.start_time else None,
                'duration_minutes': self.duration_minutes,
                'end_date': self.end_date.isoformat() if self.end_date else None,
                'is_active': self.is_active,
                'last_generated_date': self.last_generated_date.isoformat() if self.last_generated_date else None,
            }

        def __repr__(self):
            return f'<RecurrenceRule {self.id}: {self.rule_type} {self.pattern}>'

    class Occurrence(db.Model):
        """
        Materialized instance of a recurrence rule

        One row per (rule, date); the unique constraint turns a duplicate
        materialization attempt from an overlapping run into a no-op.
        """
        __tablename__ = 'occurrences'

        id = db.Column(db.String(36), primary_key=True, default=_uuid)
        rule_id = db.Column(db.String(36), db.ForeignKey('recurrence_rules.id'), nullable=False)
        entity_type = db.Column(db.String(20), nullable=False)
        occurrence_date = db.Column(db.Date, nullable=False)
        scheduled_for = db.Column(db.DateTime(timezone=True), nullable=False)
        scheduled_end = db.Column(db.DateTime(timezone=True), nullable=True)
        location_id = db.Column(db.String(36), nullable=True)
        assigned_user_id = db.Column(db.String(36), nullable=True)
        title = db.Column(db.String(200), nullable=True)
        status = db.Column(db.String(20), nullable=False, default='scheduled')
        created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

        __table_args__ = (
            db.UniqueConstraint('rule_id', 'occurrence_date', name='uq_occurrence_rule_date'),
            db.Index('idx_occurrences_date', 'occurrence_date'),
        )

        def to_dict(self):
            """Convert to dictionary for JSON"""
            return {
                'id': self.id,
                'rule_id': self.rule_id,
                'entity_type': self.entity_type,
                'occurrence_date': self.occurrence_date.isoformat(),
                'scheduled_for': self.scheduled_for.isoformat() if self.scheduled_for else None,
                'scheduled_end': self.scheduled_end.isoformat() if self.scheduled_end else None,
                'location_id': self.location_id,
                'status': self.status,
            }

        def __repr__(self):
            return f'<Occurrence {self.rule_id} @ {self.occurrence_date}>'

    return RecurrenceRule, Occurrence
