"""Tests for the database setup tool."""

from taskmate.database import Base, engine
from taskmate.utils import init_db


class TestInitDb:
    """Test init/check/reset against the test database."""

    def test_check_after_init(self, db_session):
        assert init_db.main(["check"]) == 0

    def test_check_empty_database(self, db_session):
        db_session.close()
        Base.metadata.drop_all(bind=engine)

        assert init_db.main(["check"]) == 1
        assert init_db.main(["init"]) == 0
        assert init_db.check_database() is True

    def test_reset_keeps_schema(self, db_session, user):
        db_session.close()

        assert init_db.main(["reset", "--yes"]) == 0
        assert init_db.check_database() is True

    def test_reset_cancelled(self, db_session, user, monkeypatch):
        monkeypatch.setattr("builtins.input", lambda prompt: "no")

        init_db.reset_database()

        assert init_db.check_database() is True
