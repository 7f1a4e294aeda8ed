"""Unit tests for the scheduled reminder task and beat schedule"""

import pytest

from config import Settings
from reminders.tasks import run_reminder_cycle_task
from workers.celery_app import build_beat_schedule, create_celery_app


@pytest.fixture
def task_settings(database, tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=database.url,
        STORAGE_PROVIDER="local",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        SMTP_HOST=None,
    )


class TestBeatSchedule:
    def test_daily_entry_when_enabled(self):
        schedule = build_beat_schedule(Settings(_env_file=None, REMINDER_CYCLE_HOUR_UTC=3))

        entry = schedule["document-reminders-daily"]
        assert entry["task"] == "reminders.run_cycle"
        assert entry["schedule"].hour == {3}
        assert entry["schedule"].minute == {0}

    def test_no_entry_when_disabled(self):
        assert build_beat_schedule(Settings(_env_file=None, FEATURE_DOCUMENT_REMINDERS=False)) == {}

    def test_app_registers_task_module(self):
        app = create_celery_app(Settings(_env_file=None, CELERY_BROKER_URL="memory://"))
        assert "reminders.tasks" in app.conf.include
        assert "document-reminders-daily" in app.conf.beat_schedule


class TestReminderTask:
    def test_cycle_completes(self, task_settings, monkeypatch):
        monkeypatch.setattr("reminders.tasks.get_settings", lambda: task_settings)

        result = run_reminder_cycle_task()

        assert result["status"] == "completed"
        assert result["documents_expired"] == 0
        assert result["reminders_sent"] == 0
        assert result["has_errors"] is False

    def test_skipped_when_disabled(self, task_settings, monkeypatch):
        disabled = task_settings.model_copy(update={"FEATURE_DOCUMENT_REMINDERS": False})
        monkeypatch.setattr("reminders.tasks.get_settings", lambda: disabled)

        assert run_reminder_cycle_task() == {"status": "skipped"}

    def test_failure_reported_not_raised(self, task_settings, monkeypatch):
        broken = task_settings.model_copy(update={"STORAGE_PROVIDER": "ftp"})
        monkeypatch.setattr("reminders.tasks.get_settings", lambda: broken)

        result = run_reminder_cycle_task()

        assert result["status"] == "failed"
        assert "STORAGE_PROVIDER" in result["error"]
