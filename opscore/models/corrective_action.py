"""
Corrective action models
Tracks open corrective actions, their append-only escalation history and the
per-location stop-the-line restriction.
"""
import uuid
from datetime import datetime, timezone


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def create_corrective_action_models(db):
    """Factory function to create corrective action models with db instance"""

    class CorrectiveAction(db.Model):
        """
        Corrective action raised by a failed audit item, incident or test

        Attributes:
            severity: low, medium, high, critical
            status: open, in_progress, pending_verification, resolved,
                    closed, reopened, cancelled
            stop_the_line: Restricts the location while unresolved
            due_at: SLA deadline
        """
        __tablename__ = 'corrective_actions'

        id = db.Column(db.String(36), primary_key=True, default=_uuid)
        location_id = db.Column(db.String(36), nullable=True)
        title = db.Column(db.String(200), nullable=False)
        severity = db.Column(db.String(20), nullable=False, default='medium')
        status = db.Column(db.String(30), nullable=False, default='open')
        stop_the_line = db.Column(db.Boolean, nullable=False, default=False)
        created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
        due_at = db.Column(db.DateTime(timezone=True), nullable=False)
        closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
        stop_released_by = db.Column(db.String(36), nullable=True)
        stop_released_at = db.Column(db.DateTime(timezone=True), nullable=True)
        stop_release_reason = db.Column(db.Text, nullable=True)

        escalation_events = db.relationship('EscalationEvent', backref='corrective_action', lazy='dynamic')

        __table_args__ = (
            db.Index('idx_corrective_actions_status', 'status'),
        )

        SEVERITIES = ['low', 'medium', 'high', 'critical']

        def to_dict(self):
            """Convert to dictionary for JSON"""
            return {
                'id': self.id,
                'location_id': self.location_id,
                'title': self.title,
                'severity': self.severity,
                'status': self.status,
                'stop_the_line': self.stop_the_line,
                'created_at': self.created_at.isoformat() if self.created_at else None,
                'due_at': self.due_at.isoformat() if self.due_at else None,
                'stop_released_by': self.stop_released_by,
                'stop_released_at': self.stop_released_at.isoformat() if self.stop_released_at else None,
            }

        def __repr__(self):
            return f'<CorrectiveAction {self.id}: {self.severity} {self.status}>'

    class EscalationEvent(db.Model):
        """
        Append-only escalation record

        At most one row per (corrective action, level). The unique
        constraint backs the engine's check-then-insert guard.
        """
        __tablename__ = 'escalation_events'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        corrective_action_id = db.Column(db.String(36), db.ForeignKey('corrective_actions.id'), nullable=False)
        level = db.Column(db.String(20), nullable=False)
        pct_elapsed = db.Column(db.Float, nullable=True)
        created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

        __table_args__ = (
            db.UniqueConstraint('corrective_action_id', 'level', name='uq_escalation_ca_level'),
        )

        def to_dict(self):
            return {
                'corrective_action_id': self.corrective_action_id,
                'level': self.level,
                'pct_elapsed': self.pct_elapsed,
                'created_at': self.created_at.isoformat() if self.created_at else None,
            }

        def __repr__(self):
            return f'<EscalationEvent {self.corrective_action_id}: {self.level}>'

    class LocationRestrictionState(db.Model):
        """Stop-the-line restriction, one row per location"""
        __tablename__ = 'location_restriction_states'

        id = db.Column(db.Integer, primary_key=True, autoincrement=True)
        location_id = db.Column(db.String(36), nullable=False, unique=True)
        is_restricted = db.Column(db.Boolean, nullable=False, default=False)
        reason = db.Column(db.Text, nullable=True)
        restricting_ca_id = db.Column(db.String(36), nullable=True)
        updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

        def to_dict(self):
            return {
                'location_id': self.location_id,
                'is_restricted': self.is_restricted,
                'reason': self.reason,
                'restricting_ca_id': self.restricting_ca_id,
                'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            }

        def __repr__(self):
            return f'<LocationRestrictionState {self.location_id}: {self.is_restricted}>'

    return CorrectiveAction, EscalationEvent, LocationRestrictionState
