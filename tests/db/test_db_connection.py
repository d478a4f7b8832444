import pytest
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.database import create_db_engine, health_check
from app.models.user import User


def test_database_connection(engine: Engine):
    """
    Test the database connection is working by executing a simple query
    """
    with engine.connect() as connection:
        result = connection.execute(text("SELECT 1")).scalar()
    assert result == 1


def test_tables_created(engine: Engine):
    """
    Test that the locations and users tables exist with the expected columns
    """
    inspector = inspect(engine)

    assert {"locations", "users"} <= set(inspector.get_table_names())

    columns = {c["name"]: c for c in inspector.get_columns("locations")}
    assert set(columns) == {"id", "name", "latitude", "longitude", "accuracy", "timestamp"}
    assert columns["accuracy"]["nullable"] is True
    assert columns["name"]["nullable"] is False
    assert columns["timestamp"]["nullable"] is False
    assert columns["timestamp"]["default"] is not None


def test_user_table_unique_username(engine: Engine):
    """
    Test the placeholder account table enforces unique usernames
    """
    with Session(engine) as session:
        session.add(User(username="alice", password="opaque"))
        session.commit()

        session.add(User(username="alice", password="other"))
        with pytest.raises(IntegrityError):
            session.commit()


def test_health_check_healthy(engine: Engine):
    health = health_check(engine)

    assert health.healthy is True
    assert health.message == "Database connection successful"


def test_health_check_unreachable(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path}/missing/dir/db.sqlite")

    health = health_check(engine)

    assert health.healthy is False
    assert "Database connection failed" in health.message
    engine.dispose()
