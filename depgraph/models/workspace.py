"""
Roadmap Dependency Graph Engine
Workspace domain models, the persistence side of the analysis engine.

Models:
    - Workspace:           a team's planning area; the unit of analysis scope
    - WorkItem:            feature / task tracked on the roadmap, optionally scheduled
    - WorkItemConnection:  typed directed relationship between two work items

Architecture:
    team ──1:N──▶ Workspace ──1:N──▶ WorkItem
    WorkItem ──N:M──▶ WorkItem  (via WorkItemConnection)

Only ``dependency``, ``blocks`` and ``enables`` connections impose ordering;
the remaining connection types are advisory.
"""

import uuid
from datetime import datetime, timezone

from depgraph.models import db


# ── Constants ────────────────────────────────────────────────────────────────

WORK_ITEM_STATUSES = {
    "not_started", "planning", "in_progress", "blocked",
    "review", "completed", "on_hold", "cancelled",
}

CONNECTION_TYPES = {
    "dependency", "blocks", "enables",
    "complements", "conflicts", "relates_to",
    "duplicates", "supersedes",
}

# Connection types that define directed precedence (cycles + CPM)
ORDERING_CONNECTION_TYPES = frozenset({"dependency", "blocks", "enables"})

# Connection types whose incomplete source blocks the target
BLOCKING_CONNECTION_TYPES = frozenset({"dependency", "blocks"})

CONNECTION_STATUSES = {"active", "inactive"}


# ── Helpers ──────────────────────────────────────────────────────────────────

def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


# ═════════════════════════════════════════════════════════════════════════════
# 1. Workspace
# ═════════════════════════════════════════════════════════════════════════════


class Workspace(db.Model):
    """Planning area owned by a team.  Analysis requests are scoped to one."""

    __tablename__ = "workspaces"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    team_id = db.Column(db.String(36), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    work_items = db.relationship(
        "WorkItem", backref="workspace", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "team_id": self.team_id,
            "name": self.name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Workspace {self.id}: {self.name}>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. WorkItem
# ═════════════════════════════════════════════════════════════════════════════


class WorkItem(db.Model):
    """
    Feature or task on the roadmap.
    start_date / end_date / duration_days together form the schedule triple;
    items missing any of them are left out of critical path analysis.
    """

    __tablename__ = "work_items"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    workspace_id = db.Column(
        db.String(36), db.ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    team_id = db.Column(db.String(36), nullable=False, index=True)
    name = db.Column(db.String(300), nullable=False)
    status = db.Column(
        db.String(20), nullable=False, default="not_started",
        comment="not_started | planning | in_progress | blocked | review | completed | on_hold | cancelled",
    )

    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    duration_days = db.Column(db.Float, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_graph_record(self):
        """Record in the shape the analysis engine consumes."""
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "duration_days": self.duration_days,
        }

    def to_dict(self):
        return {
            **self.to_graph_record(),
            "workspace_id": self.workspace_id,
            "team_id": self.team_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<WorkItem {self.id}: {self.name} [{self.status}]>"


# ═════════════════════════════════════════════════════════════════════════════
# 3. WorkItemConnection
# ═════════════════════════════════════════════════════════════════════════════


class WorkItemConnection(db.Model):
    """
    Source → Target relationship between work items.
    strength / confidence are in [0, 1].  Only active connections are analysed.
    """

    __tablename__ = "work_item_connections"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    workspace_id = db.Column(
        db.String(36), db.ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    source_item_id = db.Column(
        db.String(36), db.ForeignKey("work_items.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    target_item_id = db.Column(
        db.String(36), db.ForeignKey("work_items.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    connection_type = db.Column(
        db.String(20), nullable=False, default="dependency",
        comment="dependency | blocks | enables | complements | conflicts | relates_to | duplicates | supersedes",
    )
    strength = db.Column(db.Float, nullable=False, default=1.0)
    confidence = db.Column(db.Float, nullable=False, default=1.0)
    is_bidirectional = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(10), nullable=False, default="active", index=True)
    reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    # ── Constraints ──────────────────────────────────────────────────────
    __table_args__ = (
        db.CheckConstraint(
            "source_item_id != target_item_id",
            name="ck_connection_no_self_loop",
        ),
    )

    def to_graph_record(self):
        """Record in the shape the analysis engine consumes."""
        return {
            "id": self.id,
            "source_item_id": self.source_item_id,
            "target_item_id": self.target_item_id,
            "connection_type": self.connection_type,
            "strength": self.strength,
            "confidence": self.confidence,
            "is_bidirectional": bool(self.is_bidirectional),
            "status": self.status,
        }

    def to_dict(self):
        return {
            **self.to_graph_record(),
            "workspace_id": self.workspace_id,
            "reason": self.reason,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<WorkItemConnection {self.source_item_id} → {self.target_item_id} ({self.connection_type})>"
