"""
Migration: Create report engine tables.

Creates the 4 tables of the report engine:
1. reports - citizen submissions with cached cluster values
2. status_history - append-only status ledger
3. report_confirmations - one row per (report, user)
4. user_stats - per-user reputation

Uniqueness of (report_id, user_id) and (report_id, sequence) is enforced
here, by the database, not by application checks.
"""
from sqlalchemy import create_engine, text
import os

# Use same DB URL pattern as main app
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{os.getenv('USER', 'postgres')}@localhost:5432/road_reports"
)


def table_exists(conn, table_name: str) -> bool:
    """Check if a table exists in the database."""
    result = conn.execute(text("""
        SELECT EXISTS (
            SELECT FROM information_schema.tables
            WHERE table_name = :table_name
        )
    """), {"table_name": table_name})
    return result.fetchone()[0]


def type_exists(conn, type_name: str) -> bool:
    result = conn.execute(text("""
        SELECT EXISTS (SELECT 1 FROM pg_type WHERE typname = :type_name)
    """), {"type_name": type_name})
    return result.fetchone()[0]


def run_migration():
    """Create all report engine tables."""
    engine = create_engine(DATABASE_URL)

    with engine.connect() as conn:
        # Enum types match SQLAlchemy's default naming (lowercased class name, member names)
        if not type_exists(conn, "reportstatus"):
            conn.execute(text("CREATE TYPE reportstatus AS ENUM ('PENDING', 'IN_PROGRESS', 'RESOLVED')"))
            print("Created reportstatus type")
        if not type_exists(conn, "priority"):
            conn.execute(text("CREATE TYPE priority AS ENUM ('LOW', 'MEDIUM', 'HIGH')"))
            print("Created priority type")

        # =================================================================
        # TABLE 1: reports
        # =================================================================
        if table_exists(conn, "reports"):
            print("reports table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE reports (
                    id VARCHAR(36) PRIMARY KEY,
                    user_id VARCHAR(255),
                    issue_type VARCHAR(255) NOT NULL,
                    description TEXT NOT NULL,
                    image_url TEXT NOT NULL,
                    latitude DOUBLE PRECISION NOT NULL,
                    longitude DOUBLE PRECISION NOT NULL,
                    status reportstatus NOT NULL DEFAULT 'PENDING',
                    priority priority NOT NULL DEFAULT 'LOW',
                    crowd_verified BOOLEAN NOT NULL DEFAULT FALSE,
                    nearby_reports_count INTEGER NOT NULL DEFAULT 0,
                    confirmation_count INTEGER NOT NULL DEFAULT 0,
                    ai_verified BOOLEAN NOT NULL DEFAULT FALSE,
                    verification_credited BOOLEAN NOT NULL DEFAULT FALSE,
                    escalated BOOLEAN NOT NULL DEFAULT FALSE,
                    escalated_at TIMESTAMP,
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """))
            conn.execute(text("CREATE INDEX ix_reports_user_id ON reports(user_id)"))
            conn.execute(text("CREATE INDEX ix_reports_status ON reports(status)"))
            conn.execute(text("CREATE INDEX ix_reports_escalated ON reports(escalated)"))
            conn.execute(text("CREATE INDEX ix_reports_created_at ON reports(created_at)"))
            conn.execute(text("CREATE INDEX idx_reports_location ON reports(latitude, longitude)"))
            print("Created reports table")

        # =================================================================
        # TABLE 2: status_history
        # =================================================================
        if table_exists(conn, "status_history"):
            print("status_history table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE status_history (
                    id VARCHAR(36) PRIMARY KEY,
                    report_id VARCHAR(36) NOT NULL REFERENCES reports(id),
                    sequence INTEGER NOT NULL,
                    old_status reportstatus,
                    new_status reportstatus NOT NULL,
                    changed_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    changed_by VARCHAR(255) NOT NULL,
                    CONSTRAINT uq_status_history_report_sequence UNIQUE (report_id, sequence)
                )
            """))
            conn.execute(text("CREATE INDEX ix_status_history_report_id ON status_history(report_id)"))
            print("Created status_history table")

        # =================================================================
        # TABLE 3: report_confirmations
        # =================================================================
        if table_exists(conn, "report_confirmations"):
            print("report_confirmations table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE report_confirmations (
                    id VARCHAR(36) PRIMARY KEY,
                    report_id VARCHAR(36) NOT NULL REFERENCES reports(id),
                    user_id VARCHAR(255) NOT NULL,
                    confirmed_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    CONSTRAINT uq_report_confirmations_report_user UNIQUE (report_id, user_id)
                )
            """))
            conn.execute(text("CREATE INDEX ix_report_confirmations_report_id ON report_confirmations(report_id)"))
            conn.execute(text("CREATE INDEX ix_report_confirmations_user_id ON report_confirmations(user_id)"))
            print("Created report_confirmations table")

        # =================================================================
        # TABLE 4: user_stats
        # =================================================================
        if table_exists(conn, "user_stats"):
            print("user_stats table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE user_stats (
                    user_id VARCHAR(255) PRIMARY KEY,
                    points INTEGER NOT NULL DEFAULT 0 CHECK (points >= 0),
                    verified_reports_count INTEGER NOT NULL DEFAULT 0,
                    confirmations_given INTEGER NOT NULL DEFAULT 0,
                    badges JSON NOT NULL DEFAULT '[]',
                    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """))
            print("Created user_stats table")

        conn.commit()
        print("Migration complete")


if __name__ == "__main__":
    run_migration()
