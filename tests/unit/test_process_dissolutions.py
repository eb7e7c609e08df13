"""Tests for the scheduled dissolution job script."""

import importlib
import importlib.util
from datetime import timedelta
from pathlib import Path

import pytest

from collab.db.models import Workspace, WorkspaceStatus, utcnow

# ``collab.db`` re-exports the ``engine`` object, which shadows the submodule
# attribute, so fetch the module itself from the import system.
db_engine = importlib.import_module("collab.db.engine")

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "process_dissolutions.py"


@pytest.fixture
def job(monkeypatch, test_engine):
    monkeypatch.setattr(db_engine, "engine", test_engine)
    spec = importlib.util.spec_from_file_location("process_dissolutions", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_job_finalizes_due_workspaces(job, session, services, make_event, organizer, capsys):
    """The job finalizes workspaces past their schedule and reports the count."""
    event = make_event(organizer, ended=True)
    workspace = services.workspaces.provision_workspace(session, event.id, organizer.id)
    services.lifecycle.dissolve_workspace(
        session, workspace.id, organizer.id, retention_period_days=1
    )

    now = (utcnow() + timedelta(days=2)).replace(microsecond=0)
    assert job.main(["--now", now.isoformat()]) == 0

    assert "Dissolved 1 workspace(s)" in capsys.readouterr().out
    session.expire_all()
    assert session.get(Workspace, workspace.id).status == WorkspaceStatus.DISSOLVED


def test_job_without_due_workspaces(job, capsys):
    """With nothing due the job exits cleanly."""
    assert job.main([]) == 0
    assert "Dissolved 0 workspace(s)" in capsys.readouterr().out
