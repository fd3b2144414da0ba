from __future__ import annotations

import logging
from datetime import datetime

import pytest

from conftest import RecordingNotifier
from hrms_tasks.domain.enums import TaskPartition, TaskStatus, TaskViewMode
from hrms_tasks.domain.errors import (
    AllocationExhaustedError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ServiceFailure,
    UnauthorizedError,
    ValidationError,
)
from hrms_tasks.domain.filters import TaskFilters
from hrms_tasks.main import build_services


def _new(services, actor_id: str = "admin", **data):
    payload = {"title": "Quarterly report", "project_id": "proj-1"}
    payload.update(data)
    return services.tasks.create_task(payload, actor_id)


def _numbers(page) -> set[str]:
    return {task.task_number for task in page.items}


def test_review_then_finalize_flow(services, notifier) -> None:
    task = _new(services, assigned_to="alice")
    assert task.status == TaskStatus.PENDING
    assert notifier.titles_for("alice") == ["New Task Assigned"]

    reviewed = services.tasks.submit_for_review(task.id, "ready for a look", "alice")
    assert reviewed.status == TaskStatus.REVIEW
    assert reviewed.remark == "Ready For A Look"
    assert len(reviewed.reviewed_times) == 1
    assert notifier.titles_for("admin") == ["Task Submitted For Review"]

    done = services.tasks.finalize_completion(task.id, None, "admin")
    assert done.status == TaskStatus.COMPLETED
    assert done.partition == TaskPartition.COMPLETED
    assert done.id == task.id
    assert "Task Completed" in notifier.titles_for("alice")

    with pytest.raises(InvalidTransitionError):
        services.tasks.finalize_completion(task.id, None, "admin")


def test_pending_task_can_be_completed_or_rejected_directly(services) -> None:
    first = _new(services)
    second = _new(services)

    assert services.tasks.finalize_completion(first.id, None, "admin").status == TaskStatus.COMPLETED
    assert services.tasks.reject_task(second.id, "out of scope", "admin").status == TaskStatus.REJECTED


def test_review_cannot_be_submitted_twice(services) -> None:
    task = _new(services, assigned_to="alice")
    services.tasks.submit_for_review(task.id, None, "alice")

    with pytest.raises(InvalidTransitionError):
        services.tasks.submit_for_review(task.id, None, "alice")


def test_rejecting_again_replaces_remark(services, notifier) -> None:
    task = _new(services, assigned_to="alice")

    services.tasks.reject_task(task.id, "needs work", "admin")
    again = services.tasks.reject_task(task.id, "still wrong", "admin")

    assert again.status == TaskStatus.REJECTED
    assert again.remark == "Still Wrong"
    assert again.partition == TaskPartition.ACTIVE
    assert services.tasks.get_task(task.id).partition == TaskPartition.ACTIVE
    assert notifier.titles_for("alice").count("Task Rejected") == 2


def test_rejected_task_can_be_reworked(services) -> None:
    task = _new(services, assigned_to="alice")
    services.tasks.reject_task(task.id, None, "admin")

    reopened = services.tasks.update_task(task.id, {"status": "Pending"}, "admin")
    resubmitted = services.tasks.submit_for_review(task.id, None, "alice")

    assert reopened.status == TaskStatus.PENDING
    assert resubmitted.status == TaskStatus.REVIEW


def test_reminder_appends_timestamp(services, notifier) -> None:
    task = _new(services, assigned_to="bob")

    services.tasks.send_reminder(task.id, "admin")
    reminded = services.tasks.send_reminder(task.id, "admin")

    assert len(reminded.reminder_times) == 2
    assert reminded.reminder_times[0] <= reminded.reminder_times[1]
    assert notifier.titles_for("bob").count("Task Reminder") == 2


def test_reminder_needs_an_open_assigned_task(services) -> None:
    unassigned = _new(services)
    finished = _new(services, assigned_to="bob")
    services.tasks.finalize_completion(finished.id, None, "admin")

    with pytest.raises(ValidationError):
        services.tasks.send_reminder(unassigned.id, "admin")
    with pytest.raises(InvalidTransitionError):
        services.tasks.send_reminder(finished.id, "admin")


def test_update_to_completed_moves_task(services) -> None:
    task = _new(services, assigned_to="alice")

    updated = services.tasks.update_task(task.id, {"status": "Completed", "remark": "shipped"}, "admin")

    assert updated.partition == TaskPartition.COMPLETED
    assert updated.remark == "Shipped"
    assert services.tasks.get_task(task.id).partition == TaskPartition.COMPLETED


def test_only_privileged_roles_retarget(services) -> None:
    task = _new(services, target_team_id="team-alice")

    with pytest.raises(UnauthorizedError):
        services.tasks.update_task(task.id, {"target_team_id": "team-bob"}, "alice")

    updated = services.tasks.update_task(task.id, {"target_team_id": "team-bob"}, "admin")
    assert updated.target_team_id == "team-bob"
    assert services.tasks.update_task(task.id, {"target_team_id": "team-bob", "note": "same team"}, "alice").note == "Same Team"


def test_delete_is_limited_to_creator_or_admin(services) -> None:
    by_admin = _new(services)
    by_alice = _new(services, actor_id="alice")

    with pytest.raises(UnauthorizedError):
        services.tasks.delete_task(by_admin.id, "alice")

    assert services.tasks.delete_task(by_alice.id, "alice").id == by_alice.id
    assert services.tasks.delete_task(by_admin.id, "admin").id == by_admin.id
    with pytest.raises(NotFoundError):
        services.tasks.get_task(by_admin.id)


def test_notification_failures_do_not_fail_the_operation(seeded, caplog) -> None:
    services = build_services(seeded, notifier=RecordingNotifier(fail=True))

    with caplog.at_level(logging.WARNING, logger="hrms_tasks.services.notifications"):
        task = _new(services, assigned_to="alice", target_group_id="grp-ops")

    assert services.tasks.get_task(task.id).assigned_to == "alice"
    assert any("failed" in record.getMessage() for record in caplog.records)


def test_input_is_normalized(services) -> None:
    task = _new(
        services,
        title="  prepare   onboarding kit ",
        note="ask HR first",
        priority="urgent",
        deadline="2026-11-01T09:30:00",
    )

    assert task.title == "Prepare   Onboarding Kit"
    assert task.note == "Ask Hr First"
    assert task.priority == "Urgent"
    assert task.deadline == datetime(2026, 11, 1, 9, 30)


@pytest.mark.parametrize(
    "data",
    [
        {"title": "", "project_id": "proj-1"},
        {"title": "No project"},
        {"title": "Bad priority", "project_id": "proj-1", "priority": "someday"},
        {"title": "Bad deadline", "project_id": "proj-1", "deadline": "next week"},
        {"title": "Extra", "project_id": "proj-1", "status": "Completed"},
    ],
)
def test_invalid_input_is_rejected(services, data) -> None:
    with pytest.raises(ValidationError):
        services.tasks.create_task(data, "admin")


@pytest.mark.parametrize(
    "patch",
    [
        {"title": ""},
        {"title": "   "},
        {"title": None},
        {"project_id": None},
        {"project_id": ""},
        {"status": None},
        {"priority": None},
    ],
)
def test_update_rejects_blank_required_fields(services, patch) -> None:
    task = _new(services, assigned_to="alice")

    with pytest.raises(ValidationError):
        services.tasks.update_task(task.id, patch, "admin")

    unchanged = services.tasks.get_task(task.id)
    assert unchanged.title == "Quarterly Report"
    assert unchanged.project_id == "proj-1"
    assert unchanged.status == TaskStatus.PENDING


def test_server_faults_surface_as_generic_failure(services, monkeypatch, caplog) -> None:
    def exhausted(series, session=None):
        raise AllocationExhaustedError(series.name, 100)

    monkeypatch.setattr(services.allocator, "allocate", exhausted)

    with caplog.at_level(logging.ERROR, logger="hrms_tasks.services.faults"):
        with pytest.raises(ServiceFailure) as excinfo:
            _new(services)

    assert excinfo.value.client_facing is True
    assert isinstance(excinfo.value.__cause__, AllocationExhaustedError)
    assert "T-" not in str(excinfo.value)
    assert any(record.exc_info for record in caplog.records)


def test_client_errors_pass_through_unchanged(services) -> None:
    task = _new(services, task_number="T-50000")

    with pytest.raises(ConflictError):
        _new(services, task_number="T-50000")
    with pytest.raises(NotFoundError):
        services.tasks.get_task("missing")
    assert services.tasks.get_task(task.id).task_number == "T-50000"


def test_unknown_actor_cannot_create(services) -> None:
    with pytest.raises(NotFoundError):
        _new(services, actor_id="nobody")


def test_view_modes_pick_partition_and_audience(services) -> None:
    mine = _new(services, title="Mine", assigned_to="alice")
    bobs = _new(services, "alice", title="Bobs", assigned_to="bob")
    _new(services, title="Carols", assigned_to="carol")
    finished = _new(services, title="Finished", assigned_to="alice")
    services.tasks.finalize_completion(finished.id, None, "admin")
    review_mine = _new(services, "alice", title="Review Mine", assigned_to="bob")
    services.tasks.submit_for_review(review_mine.id, None, "bob")
    review_admin = _new(services, title="Review Admin", assigned_to="carol")
    services.tasks.submit_for_review(review_admin.id, None, "carol")
    team_target = _new(services, title="For Team", target_team_id="team-alice")

    def view(mode: TaskViewMode) -> set[str]:
        return _numbers(services.tasks.list_tasks(TaskFilters(view_mode=mode), "alice"))

    assert view(TaskViewMode.MY_PENDING) == {mine.task_number}
    assert view(TaskViewMode.MY_COMPLETED) == {finished.task_number}
    assert view(TaskViewMode.TEAM_PENDING) == {mine.task_number, bobs.task_number, team_target.task_number}
    assert view(TaskViewMode.TEAM_COMPLETED) == {finished.task_number}
    assert view(TaskViewMode.REVIEW_PENDING_BY_ME) == {review_mine.task_number}
    assert view(TaskViewMode.REVIEW_PENDING_BY_TEAM) == {review_mine.task_number, review_admin.task_number}


def test_team_views_for_unknown_actor_are_empty(services) -> None:
    _new(services, assigned_to="alice")

    page = services.tasks.list_tasks(TaskFilters(view_mode=TaskViewMode.TEAM_PENDING), "nobody")

    assert page.items == []
    assert page.total == 0


def test_search_and_multi_value_filters(services) -> None:
    report = _new(services, title="Budget report", priority="High")
    audit = _new(services, title="Security audit", priority="Low", note="check the vpn")
    _new(services, title="Team lunch", priority="Medium")

    def listed(**kwargs) -> set[str]:
        return _numbers(services.tasks.list_tasks(TaskFilters(**kwargs), "admin"))

    assert listed(search="budget|vpn") == {report.task_number, audit.task_number}
    assert listed(search=report.task_number.lower()) == {report.task_number}
    assert listed(priority="High, Low") == {report.task_number, audit.task_number}


def test_search_treats_wildcard_characters_literally(services) -> None:
    underscored = _new(services, title="plan a_b")
    _new(services, title="plan axb")
    percent = _new(services, title="raise 10% budget")
    _new(services, title="raise 10 budget")

    def listed(search: str) -> set[str]:
        return _numbers(services.tasks.list_tasks(TaskFilters(search=search), "admin"))

    assert listed("a_b") == {underscored.task_number}
    assert listed("10%") == {percent.task_number}


def test_unfiltered_listing_is_restricted_for_employees(services) -> None:
    assigned = _new(services, title="Assigned", assigned_to="alice")
    created = _new(services, "alice", title="Created", assigned_to="bob")
    grouped = _new(services, title="Grouped", target_group_id="grp-ops")
    hidden = _new(services, title="Hidden", assigned_to="carol")

    employee_view = _numbers(services.tasks.list_tasks(TaskFilters(), "alice"))
    admin_view = _numbers(services.tasks.list_tasks(TaskFilters(), "admin"))

    assert employee_view == {assigned.task_number, created.task_number, grouped.task_number}
    assert admin_view == employee_view | {hidden.task_number}


def test_list_uses_configured_page_size(services) -> None:
    for index in range(30):
        _new(services, title=f"Task {index}")

    page = services.tasks.list_tasks(TaskFilters(page=2), "admin")

    assert page.limit == 25
    assert page.total == 30
    assert len(page.items) == 5


def test_bulk_create_reports_each_row(services) -> None:
    rows = [
        {"title": "first import", "project_id": "proj-1"},
        {"title": "", "project_id": "proj-1"},
        {"title": "second import", "project_id": "proj-1", "task_number": "T-11001"},
        {"title": "third import", "project_id": "proj-1", "color": "red"},
        {"title": "fourth import", "project_id": "proj-1", "assigned_to": "bob"},
    ]

    result = services.tasks.bulk_create(rows, "admin")

    assert result.success == 3
    assert result.failed == 2
    assert [error["row"] for error in result.errors] == [1, 3]
    assert result.message == "Successfully inserted 3 records."
    titles = {task.title: task.task_number for task in services.tasks.list_tasks(TaskFilters(), "admin").items}
    assert titles == {
        "First Import": "T-11001",
        "Second Import": "T-11002",
        "Fourth Import": "T-11003",
    }
    assert [task.title for task in services.acceptances.pending_for("bob")] == ["Fourth Import"]


def test_group_task_is_broadcast_to_members(seeded) -> None:
    services = build_services(seeded)

    _new(services, title="Group chores", target_group_id="grp-ops")

    assert [row.title for row in services.notifier.list_for("carol")] == ["New Group Task"]
    assert [row.title for row in services.notifier.list_for("alice")] == ["New Group Task"]
    assert services.notifier.list_for("bob") == []
