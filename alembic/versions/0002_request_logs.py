"""add request_logs history table

Revision ID: 0002_request_logs
Revises: 0001_baseline_schema
Create Date: 2026-10-05 00:30:00.000000

"""

from __future__ import annotations

from alembic import op


revision = "0002_request_logs"
down_revision = "0001_baseline_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.request_logs (
            id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
            request_id uuid NOT NULL REFERENCES app.maintenance_requests(id) ON DELETE CASCADE,
            actor_user_id uuid NOT NULL REFERENCES app.users(id),
            action text NOT NULL
                CHECK (action IN ('CREATED', 'STATUS_CHANGED', 'ASSIGNED', 'UNASSIGNED', 'UPDATED')),
            details jsonb NOT NULL DEFAULT '{}'::jsonb,
            created_at timestamptz NOT NULL DEFAULT clock_timestamp()
        );
        """
    )
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_request_logs_request ON app.request_logs (request_id, created_at DESC);"
    )

    # history rows are append-only
    op.execute(
        """
        CREATE OR REPLACE FUNCTION app.request_logs_no_update() RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'request_logs rows are immutable';
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    op.execute(
        """
        CREATE TRIGGER request_logs_no_update
        BEFORE UPDATE ON app.request_logs
        FOR EACH ROW EXECUTE FUNCTION app.request_logs_no_update();
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS request_logs_no_update ON app.request_logs;")
    op.execute("DROP FUNCTION IF EXISTS app.request_logs_no_update();")
    op.execute("DROP TABLE IF EXISTS app.request_logs;")
