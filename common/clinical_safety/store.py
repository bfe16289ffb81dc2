"""SQLite-backed storage for clinical alerts."""

import json
import logging
import os
import sqlite3
import uuid
from datetime import datetime
from typing import Any

from .models import Alert, AlertSeverity, AlertStatus

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS clinical_alerts (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL,
    facility_id TEXT,
    organization_id TEXT,
    alert_type TEXT NOT NULL,
    severity TEXT NOT NULL,
    priority TEXT NOT NULL,
    title TEXT NOT NULL,
    message TEXT NOT NULL,
    clinical_context TEXT,
    risk_score INTEGER,
    risk_level TEXT,
    recommendations TEXT,
    alternatives TEXT,
    status TEXT NOT NULL DEFAULT 'active',
    triggered_by TEXT,
    source TEXT NOT NULL DEFAULT 'automated',
    confidence INTEGER NOT NULL DEFAULT 100,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    expires_at TEXT,
    acknowledged_by TEXT,
    acknowledged_at TEXT,
    acknowledgment_note TEXT,
    dismissed_by TEXT,
    dismissed_at TEXT,
    dismissal_reason TEXT
);

CREATE INDEX IF NOT EXISTS idx_clinical_alerts_patient ON clinical_alerts(patient_id, created_at);
CREATE INDEX IF NOT EXISTS idx_clinical_alerts_status ON clinical_alerts(status, expires_at);

CREATE TABLE IF NOT EXISTS clinical_alert_audit (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    alert_id TEXT NOT NULL,
    action TEXT NOT NULL,
    performed_by TEXT,
    performed_at TEXT NOT NULL,
    details TEXT
);

CREATE INDEX IF NOT EXISTS idx_clinical_alert_audit_alert ON clinical_alert_audit(alert_id);
"""


def _ts(value: datetime | None) -> str | None:
    return value.isoformat(timespec="microseconds") if value else None


class AlertStore:
    """SQLite-backed store for clinical alerts."""

    def __init__(self, db_path: str):
        """Initialize alert store.

        Args:
            db_path: Path to SQLite database (CLINICAL_ALERT_DB_PATH in the
                     service configuration)
        """
        self.db_path = os.path.expanduser(db_path)

        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._init_db()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    def _connect(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = sqlite3.connect(self.db_path, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def _generate_id(self) -> str:
        return f"CA-{uuid.uuid4().hex[:12].upper()}"

    def _audit(
        self,
        conn: sqlite3.Connection,
        alert_id: str,
        action: str,
        performed_by: str | None = None,
        details: str | None = None,
        now: datetime | None = None,
    ) -> None:
        """Log action to audit trail within the caller's transaction."""
        conn.execute(
            """
            INSERT INTO clinical_alert_audit (alert_id, action, performed_by, performed_at, details)
            VALUES (?, ?, ?, ?, ?)
            """,
            (alert_id, action, performed_by, _ts(now or datetime.now()), details),
        )

    # --- CRUD ---

    def save_alert(self, alert: Alert) -> Alert:
        """Persist a new alert. Assigns id and timestamps when missing.

        Returns:
            The stored Alert as read back from the database
        """
        now = datetime.now()
        alert.id = alert.id or self._generate_id()
        alert.created_at = alert.created_at or now
        alert.updated_at = alert.updated_at or alert.created_at

        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO clinical_alerts (
                        id, patient_id, facility_id, organization_id,
                        alert_type, severity, priority, title, message,
                        clinical_context, risk_score, risk_level,
                        recommendations, alternatives, status,
                        triggered_by, source, confidence,
                        created_at, updated_at, expires_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        alert.id,
                        alert.patient_id,
                        alert.facility_id,
                        alert.organization_id,
                        alert.alert_type.value,
                        alert.severity.value,
                        alert.priority.value,
                        alert.title,
                        alert.message,
                        json.dumps(alert.clinical_context),
                        alert.risk_score,
                        alert.risk_level.value if alert.risk_level else None,
                        json.dumps(list(alert.recommendations)),
                        json.dumps(list(alert.alternatives)),
                        alert.status.value,
                        alert.triggered_by,
                        alert.source.value,
                        alert.confidence,
                        _ts(alert.created_at),
                        _ts(alert.updated_at),
                        _ts(alert.expires_at),
                    ),
                )
                self._audit(
                    conn, alert.id, "created",
                    performed_by=alert.triggered_by,
                    details=f"{alert.alert_type.value}/{alert.severity.value}",
                    now=now,
                )
        finally:
            conn.close()

        return self.get_alert(alert.id)

    def get_alert(self, alert_id: str) -> Alert | None:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM clinical_alerts WHERE id = ?", (alert_id,)
            ).fetchone()
        finally:
            conn.close()

        if not row:
            return None
        return Alert.from_row(row)

    def list_alerts(
        self,
        patient_id: str,
        status: AlertStatus | None = None,
        severity: AlertSeverity | None = None,
        active_only: bool = False,
        limit: int = 100,
        now: datetime | None = None,
    ) -> list[Alert]:
        """List a patient's alerts, newest first."""
        query = "SELECT * FROM clinical_alerts WHERE patient_id = ?"
        params: list[Any] = [patient_id]

        if status:
            query += " AND status = ?"
            params.append(AlertStatus(status).value)
        if severity:
            query += " AND severity = ?"
            params.append(AlertSeverity(severity).value)
        if active_only:
            query += " AND status = 'active' AND (expires_at IS NULL OR expires_at > ?)"
            params.append(_ts(now or datetime.now()))

        query += " ORDER BY created_at DESC, rowid DESC LIMIT ?"
        params.append(limit)

        conn = self._connect()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()

        return [Alert.from_row(row) for row in rows]

    # --- Status transitions ---

    def transition(
        self,
        alert_id: str,
        target: AlertStatus,
        allowed_from: set[AlertStatus] | frozenset,
        performed_by: str | None = None,
        fields: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> bool:
        """Atomically move an alert to ``target`` if its status is in ``allowed_from``.

        Returns:
            True if the row was updated, False if the alert was not in an
            allowed status (or does not exist)
        """
        if not allowed_from:
            return False

        now = now or datetime.now()
        assignments = ["status = ?", "updated_at = ?"]
        params: list[Any] = [AlertStatus(target).value, _ts(now)]
        for column, value in (fields or {}).items():
            assignments.append(f"{column} = ?")
            params.append(_ts(value) if isinstance(value, datetime) else value)

        statuses = sorted(AlertStatus(s).value for s in allowed_from)
        placeholders = ", ".join("?" for _ in statuses)

        conn = self._connect()
        try:
            with conn:
                cursor = conn.execute(
                    f"""
                    UPDATE clinical_alerts SET {", ".join(assignments)}
                    WHERE id = ? AND status IN ({placeholders})
                    """,
                    (*params, alert_id, *statuses),
                )
                updated = cursor.rowcount == 1
                if updated:
                    self._audit(conn, alert_id, AlertStatus(target).value, performed_by, now=now)
        finally:
            conn.close()

        return updated

    def expire_due(self, now: datetime | None = None) -> list[str]:
        """Mark every active alert past its expiry as expired.

        Returns:
            IDs of the alerts that were expired
        """
        now = now or datetime.now()
        conn = self._connect()
        try:
            with conn:
                rows = conn.execute(
                    """
                    SELECT id FROM clinical_alerts
                    WHERE status = 'active' AND expires_at IS NOT NULL AND expires_at <= ?
                    """,
                    (_ts(now),),
                ).fetchall()
                expired = []
                for row in rows:
                    cursor = conn.execute(
                        """
                        UPDATE clinical_alerts SET status = 'expired', updated_at = ?
                        WHERE id = ? AND status = 'active'
                        """,
                        (_ts(now), row["id"]),
                    )
                    if cursor.rowcount == 1:
                        self._audit(conn, row["id"], "expired", "system", now=now)
                        expired.append(row["id"])
        finally:
            conn.close()

        return expired

    # --- Reporting ---

    def get_summary(
        self,
        organization_id: str | None = None,
        facility_id: str | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Aggregate alert counts, optionally scoped to an organization/facility."""
        where = []
        params: list[Any] = []
        if organization_id:
            where.append("organization_id = ?")
            params.append(organization_id)
        if facility_id:
            where.append("facility_id = ?")
            params.append(facility_id)
        clause = f"WHERE {' AND '.join(where)}" if where else ""
        active_clause = "status = 'active' AND (expires_at IS NULL OR expires_at > ?)"
        now_ts = _ts(now or datetime.now())

        conn = self._connect()
        try:
            total = conn.execute(
                f"SELECT COUNT(*) FROM clinical_alerts {clause}", params
            ).fetchone()[0]
            active = conn.execute(
                f"SELECT COUNT(*) FROM clinical_alerts {clause} {'AND' if clause else 'WHERE'} {active_clause}",
                (*params, now_ts),
            ).fetchone()[0]
            critical = conn.execute(
                f"""
                SELECT COUNT(*) FROM clinical_alerts {clause} {'AND' if clause else 'WHERE'}
                severity = 'critical' AND {active_clause}
                """,
                (*params, now_ts),
            ).fetchone()[0]
            by_type = {
                row["alert_type"]: row["n"]
                for row in conn.execute(
                    f"SELECT alert_type, COUNT(*) AS n FROM clinical_alerts {clause} GROUP BY alert_type",
                    params,
                )
            }
            by_severity = {
                row["severity"]: row["n"]
                for row in conn.execute(
                    f"SELECT severity, COUNT(*) AS n FROM clinical_alerts {clause} GROUP BY severity",
                    params,
                )
            }
        finally:
            conn.close()

        return {
            "totalAlerts": total,
            "activeAlerts": active,
            "criticalAlerts": critical,
            "byType": by_type,
            "bySeverity": by_severity,
        }

    def get_audit_log(self, alert_id: str) -> list[dict[str, Any]]:
        conn = self._connect()
        try:
            rows = conn.execute(
                """
                SELECT action, performed_by, performed_at, details
                FROM clinical_alert_audit WHERE alert_id = ? ORDER BY id
                """,
                (alert_id,),
            ).fetchall()
        finally:
            conn.close()
        return [dict(row) for row in rows]
