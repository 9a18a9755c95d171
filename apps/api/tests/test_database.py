"""
Configuration and database session tests.
"""
from unittest.mock import patch

import pytest
from pydantic import ValidationError
from sqlalchemy import text

from core.config import Settings
from core.database import build_database_url, get_db_sync
from models import ClientScoring


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("INSIGHT_FRESHNESS_WINDOW_DAYS", raising=False)
        s = Settings(_env_file=None)

        assert s.INSIGHT_FRESHNESS_WINDOW_DAYS == 7
        assert s.DEFAULT_SCORING_PROFILE == "lifestyle"
        assert s.EXTERNAL_API_RETRY_ATTEMPTS >= 1

    def test_window_from_environment(self, monkeypatch):
        monkeypatch.setenv("INSIGHT_FRESHNESS_WINDOW_DAYS", "3")
        assert Settings(_env_file=None).INSIGHT_FRESHNESS_WINDOW_DAYS == 3

    def test_window_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("INSIGHT_FRESHNESS_WINDOW_DAYS", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)


class TestDatabaseUrl:

    def test_explicit_url_wins(self):
        with patch("core.database.settings") as mock_settings:
            mock_settings.DATABASE_URL = "sqlite://"
            assert build_database_url() == "sqlite://"

    def test_built_from_postgres_parts(self):
        with patch("core.database.settings") as mock_settings:
            mock_settings.DATABASE_URL = None
            mock_settings.POSTGRES_USER = "coach"
            mock_settings.POSTGRES_PASSWORD = "secret"
            mock_settings.POSTGRES_HOST = "db"
            mock_settings.POSTGRES_PORT = 5432
            mock_settings.POSTGRES_DB = "scoring"
            assert build_database_url() == "postgresql://coach:secret@db:5432/scoring"


class TestSessions:

    def test_get_db_sync_returns_unmanaged_session(self):
        db = get_db_sync()
        try:
            assert db.execute(text("SELECT 1")).scalar() == 1
        finally:
            db.close()

    def test_savepoint_rollback_keeps_outer_work(self, db_session):
        db_session.add(ClientScoring(client_id="outer"))
        db_session.flush()

        with pytest.raises(RuntimeError):
            with db_session.begin_nested():
                db_session.add(ClientScoring(client_id="inner"))
                db_session.flush()
                raise RuntimeError("undo inner only")

        assert [r.client_id for r in db_session.query(ClientScoring).all()] == ["outer"]
