"""
Tests for the command-line scripts shipped next to the app.
"""

from sqlalchemy.orm import sessionmaker

import create_first_user
import reconcile_seats
from academy_api import config
from academy_api.database import build_engine, init_db
from academy_api.models import Academy, AcademyClass, User, UserRole


class TestReconcileSeatsScript:
    def _seed(self, url, enrolled_count):
        engine = build_engine(url)
        init_db(bind=engine)
        session = sessionmaker(bind=engine)()
        academy = Academy(name="Script Dojo")
        session.add(academy)
        session.flush()
        academy_class = AcademyClass(
            academy_id=academy.id, name="Kids", capacity=5, enrolled_count=enrolled_count, currency="USD"
        )
        session.add(academy_class)
        session.commit()
        class_id = academy_class.id
        session.close()
        return engine, class_id

    def test_report_only_leaves_counters(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'report.db'}"
        engine, class_id = self._seed(url, enrolled_count=2)

        assert reconcile_seats.reconcile_seats(["--database-url", url]) == 1

        session = sessionmaker(bind=engine)()
        assert session.get(AcademyClass, class_id).enrolled_count == 2
        session.close()

    def test_apply_fixes_counters(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'apply.db'}"
        engine, class_id = self._seed(url, enrolled_count=2)

        assert reconcile_seats.reconcile_seats(["--database-url", url, "--apply"]) == 0

        session = sessionmaker(bind=engine)()
        assert session.get(AcademyClass, class_id).enrolled_count == 0
        session.close()


class TestCreateFirstUser:
    def test_creates_super_admin_once(self, db, session_factory, monkeypatch):
        monkeypatch.setattr(config, "FIRST_ADMIN_USERNAME", "root")
        monkeypatch.setattr(config, "FIRST_ADMIN_EMAIL", "root@example.com")
        monkeypatch.setattr(config, "FIRST_ADMIN_PASSWORD", "change-me")

        create_first_user.create_first_user(session_factory)
        create_first_user.create_first_user(session_factory)

        admins = db.query(User).filter(User.username == "root").all()
        assert len(admins) == 1
        assert admins[0].role == UserRole.SUPER_ADMIN.value
