from __future__ import annotations

import pytest

from hrms_tasks import main as entrypoint
from hrms_tasks.domain.enums import TaskAction
from hrms_tasks.domain.entities import ActorEntity
from hrms_tasks.services.access import RoleAccessPolicy


def test_main_wires_services(monkeypatch) -> None:
    calls: list[str] = []
    monkeypatch.setattr(entrypoint, "setup_logging", lambda: calls.append("logging"))
    monkeypatch.setattr(entrypoint, "init_db", lambda: calls.append("db"))

    services = entrypoint.main()

    assert calls == ["logging", "db"]
    assert isinstance(services, entrypoint.Services)
    assert services.tasks is not None
    assert services.acceptances is not None


def test_main_exits_when_database_is_unreachable(monkeypatch) -> None:
    def unreachable() -> None:
        raise ConnectionError("refused")

    monkeypatch.setattr(entrypoint, "setup_logging", lambda: None)
    monkeypatch.setattr(entrypoint, "init_db", unreachable)

    with pytest.raises(SystemExit) as excinfo:
        entrypoint.main()

    assert excinfo.value.code == 1


def test_role_policy_reads_roles_case_insensitively() -> None:
    policy = RoleAccessPolicy(["admin"])
    admin = ActorEntity(id="a", role="Admin")
    employee = ActorEntity(id="e", role="EMPLOYEE")

    assert policy.is_privileged(admin)
    assert policy.authorize(admin, TaskAction.REASSIGN_TARGET)
    assert not policy.authorize(employee, TaskAction.REASSIGN_TARGET)
    assert not policy.authorize(employee, TaskAction.DELETE)
    assert policy.authorize(employee, TaskAction.UPDATE)
