"""baseline schema: users, teams, equipment, maintenance requests

Revision ID: 0001_baseline_schema
Revises:
Create Date: 2026-10-05 00:00:00.000000

"""

from __future__ import annotations

from alembic import op


revision = "0001_baseline_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")
    op.execute("CREATE SCHEMA IF NOT EXISTS app;")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.users (
            id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
            email text NOT NULL UNIQUE,
            name text NOT NULL,
            role text NOT NULL DEFAULT 'REQUESTER'
                CHECK (role IN ('ADMIN', 'MANAGER', 'TECHNICIAN', 'REQUESTER')),
            password_hash text,
            created_at timestamptz NOT NULL DEFAULT now()
        );
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.teams (
            id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
            name text NOT NULL UNIQUE,
            description text,
            created_at timestamptz NOT NULL DEFAULT now()
        );
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.team_members (
            team_id uuid NOT NULL REFERENCES app.teams(id) ON DELETE CASCADE,
            user_id uuid NOT NULL REFERENCES app.users(id) ON DELETE CASCADE,
            is_leader boolean NOT NULL DEFAULT false,
            created_at timestamptz NOT NULL DEFAULT now(),
            PRIMARY KEY (team_id, user_id)
        );
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.equipment (
            id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
            name text NOT NULL,
            serial_number text NOT NULL UNIQUE,
            category text NOT NULL,
            status text NOT NULL DEFAULT 'ACTIVE'
                CHECK (status IN ('ACTIVE', 'SCRAPPED')),
            default_team_id uuid REFERENCES app.teams(id) ON DELETE SET NULL,
            created_at timestamptz NOT NULL DEFAULT now(),
            updated_at timestamptz NOT NULL DEFAULT now()
        );
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.maintenance_requests (
            id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
            title text NOT NULL,
            description text NOT NULL,
            type text NOT NULL CHECK (type IN ('CORRECTIVE', 'PREVENTIVE')),
            status text NOT NULL DEFAULT 'NEW'
                CHECK (status IN ('NEW', 'IN_PROGRESS', 'REPAIRED', 'SCRAP')),
            priority text NOT NULL DEFAULT 'MEDIUM'
                CHECK (priority IN ('LOW', 'MEDIUM', 'HIGH', 'CRITICAL')),
            category text,
            equipment_id uuid NOT NULL REFERENCES app.equipment(id),
            team_id uuid REFERENCES app.teams(id) ON DELETE SET NULL,
            technician_id uuid REFERENCES app.users(id),
            created_by_id uuid NOT NULL REFERENCES app.users(id),
            scheduled_date date,
            started_at timestamptz,
            completed_at timestamptz,
            duration_minutes integer CHECK (duration_minutes IS NULL OR duration_minutes > 0),
            repair_notes text,
            created_at timestamptz NOT NULL DEFAULT now(),
            updated_at timestamptz NOT NULL DEFAULT now(),
            CONSTRAINT repaired_requires_duration
                CHECK (status <> 'REPAIRED' OR duration_minutes IS NOT NULL)
        );
        """
    )

    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_maintenance_requests_equipment ON app.maintenance_requests (equipment_id);"
    )
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_maintenance_requests_team_status ON app.maintenance_requests (team_id, status);"
    )

    # a technician is always a member of the request's team, also when the
    # team or the membership is removed outside the request engine
    op.execute(
        """
        CREATE OR REPLACE FUNCTION app.maintenance_requests_clear_technician() RETURNS trigger AS $$
        BEGIN
            IF NEW.team_id IS DISTINCT FROM OLD.team_id THEN
                NEW.technician_id := NULL;
            END IF;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    op.execute(
        """
        CREATE TRIGGER maintenance_requests_clear_technician
        BEFORE UPDATE OF team_id ON app.maintenance_requests
        FOR EACH ROW EXECUTE FUNCTION app.maintenance_requests_clear_technician();
        """
    )
    op.execute(
        """
        CREATE OR REPLACE FUNCTION app.team_members_release_requests() RETURNS trigger AS $$
        BEGIN
            UPDATE app.maintenance_requests
            SET technician_id = NULL, updated_at = now()
            WHERE team_id = OLD.team_id
              AND technician_id = OLD.user_id
              AND status IN ('NEW', 'IN_PROGRESS');
            RETURN OLD;
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    op.execute(
        """
        CREATE TRIGGER team_members_release_requests
        AFTER DELETE ON app.team_members
        FOR EACH ROW EXECUTE FUNCTION app.team_members_release_requests();
        """
    )
    op.execute(
        """
        ALTER TABLE app.maintenance_requests
        ADD CONSTRAINT technician_requires_team
            CHECK (technician_id IS NULL OR team_id IS NOT NULL);
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS team_members_release_requests ON app.team_members;")
    op.execute("DROP FUNCTION IF EXISTS app.team_members_release_requests();")
    op.execute("DROP TRIGGER IF EXISTS maintenance_requests_clear_technician ON app.maintenance_requests;")
    op.execute("DROP FUNCTION IF EXISTS app.maintenance_requests_clear_technician();")
    op.execute("DROP TABLE IF EXISTS app.maintenance_requests;")
    op.execute("DROP TABLE IF EXISTS app.equipment;")
    op.execute("DROP TABLE IF EXISTS app.team_members;")
    op.execute("DROP TABLE IF EXISTS app.teams;")
    op.execute("DROP TABLE IF EXISTS app.users;")
