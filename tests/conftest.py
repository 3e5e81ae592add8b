"""
Shared fixtures: a SQLite file database holding the ``User`` and ``Group``
tables, and a plugin connected to it.
"""

import pytest
from sqlalchemy import create_engine, insert, select

from scim_sql_bridge.config import ConnectionSettings
from scim_sql_bridge.services import SQLPlugin
from scim_sql_bridge.services.query_builder import metadata, user_table


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "provisioning.db"
    engine = create_engine(f"sqlite:///{path}")
    metadata.create_all(engine)
    engine.dispose()
    return path


@pytest.fixture
def connection_settings(db_path):
    return ConnectionSettings(driver="sqlite", database=str(db_path))


@pytest.fixture
def plugin(connection_settings):
    return SQLPlugin(connection_settings, plugin_name="plugin-mssql")


@pytest.fixture
def db(db_path):
    """Direct access to the test database, bypassing the plugin."""

    class Database:
        def __init__(self, path):
            self.url = f"sqlite:///{path}"

        def insert_user(self, **columns):
            engine = create_engine(self.url)
            with engine.begin() as conn:
                conn.execute(insert(user_table).values(**columns))
            engine.dispose()

        def user_row(self, user_id):
            engine = create_engine(self.url)
            with engine.connect() as conn:
                row = conn.execute(
                    select(user_table).where(user_table.c.UserID == user_id)
                ).mappings().first()
            engine.dispose()
            return dict(row) if row else None

        def user_ids(self):
            engine = create_engine(self.url)
            with engine.connect() as conn:
                ids = sorted(conn.execute(select(user_table.c.UserID)).scalars())
            engine.dispose()
            return ids

    return Database(db_path)

