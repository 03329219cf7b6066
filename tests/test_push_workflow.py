"""Tests for the master push confirmation workflow."""

import pytest

from repo_manager.application.push_workflow import (
    CONFIRMATION_MESSAGES,
    PushState,
    PushWorkflow,
)
from repo_manager.application.registry_service import RepositoryRegistry
from repo_manager.domain.errors import PushValidationError, PushWorkflowError
from repo_manager.domain.repository import PushType


@pytest.fixture
def prod_and_stage(registry):
    prod = registry.add_repository("https://github.com/acme/prod.git", "Prod")
    stage = registry.add_repository("https://github.com/acme/stage.git", "Stage")
    return prod, stage


@pytest.fixture
def workflow(registry):
    return PushWorkflow(registry)


def select(workflow, source, target):
    workflow.select_source(source.id)
    workflow.select_target(target.id)


def expected_summary(source, target, pushed_at):
    return f"Pushed from {source} to {target} at {pushed_at.astimezone().strftime('%H:%M:%S')}"


def test_push_to_non_master_executes_immediately(workflow, registry, clock, prod_and_stage):
    prod, stage = prod_and_stage
    select(workflow, prod, stage)
    pushed_at = clock.advance(120)

    result = workflow.request_push()

    assert result is not None
    assert workflow.state is PushState.IDLE
    assert workflow.warning_message is None
    assert registry.get(stage.id).last_pushed == pushed_at
    assert result.summary == expected_summary("Prod", "Stage", pushed_at)
    assert workflow.last_action == result.summary


def test_master_push_requires_three_confirmations(workflow, registry, clock, prod_and_stage):
    prod, stage = prod_and_stage
    select(workflow, stage, prod)
    pushed_at = clock.advance(120)

    assert workflow.request_push() is None
    assert workflow.state is PushState.AWAITING_CONFIRMATION
    assert workflow.warning_message == CONFIRMATION_MESSAGES[0]

    assert workflow.confirm() is None
    assert workflow.warning_message == CONFIRMATION_MESSAGES[1]
    assert registry.get(prod.id).last_pushed == prod.last_pushed

    assert workflow.confirm() is None
    assert workflow.warning_message == CONFIRMATION_MESSAGES[2]
    assert registry.get(prod.id).last_pushed == prod.last_pushed

    result = workflow.confirm()

    assert result.summary == expected_summary("Stage", "Prod", pushed_at)
    assert registry.get(prod.id).last_pushed == pushed_at
    assert workflow.state is PushState.IDLE
    assert workflow.confirmation_step == 0


def test_warning_messages_are_distinct():
    assert len(set(CONFIRMATION_MESSAGES)) == 3
    assert "modify the master" in CONFIRMATION_MESSAGES[1]
    assert "cannot be undone" in CONFIRMATION_MESSAGES[2]


@pytest.mark.parametrize("confirmations", [0, 1, 2])
def test_cancel_at_any_step_leaves_state_unchanged(workflow, registry, clock, prod_and_stage, confirmations):
    prod, stage = prod_and_stage
    select(workflow, stage, prod)
    clock.advance(120)

    workflow.request_push()
    for _ in range(confirmations):
        workflow.confirm()
    workflow.cancel()

    assert workflow.state is PushState.IDLE
    assert workflow.confirmation_step == 0
    assert workflow.last_action is None
    assert registry.get(prod.id).last_pushed == prod.last_pushed


def test_dialog_restarts_from_first_step_after_cancel(workflow, prod_and_stage):
    prod, stage = prod_and_stage
    select(workflow, stage, prod)
    workflow.request_push()
    workflow.confirm()
    workflow.cancel()

    workflow.request_push()

    assert workflow.warning_message == CONFIRMATION_MESSAGES[0]


def test_request_push_while_dialog_open_does_not_skip_steps(workflow, registry, prod_and_stage):
    prod, stage = prod_and_stage
    select(workflow, stage, prod)
    workflow.request_push()
    workflow.confirm()

    assert workflow.request_push() is None
    assert workflow.confirmation_step == 1
    assert registry.get(prod.id).last_pushed == prod.last_pushed


@pytest.mark.parametrize("source_set, target_set", [(False, False), (True, False), (False, True)])
def test_push_requires_source_and_target(workflow, registry, prod_and_stage, source_set, target_set):
    prod, stage = prod_and_stage
    if source_set:
        workflow.select_source(prod.id)
    if target_set:
        workflow.select_target(stage.id)

    with pytest.raises(PushValidationError, match="select both source and target"):
        workflow.request_push()

    assert registry.get(stage.id).last_pushed == stage.last_pushed
    assert workflow.state is PushState.IDLE


def test_push_with_unknown_target_fails(workflow, prod_and_stage):
    prod, _ = prod_and_stage
    workflow.select_source(prod.id)
    workflow.select_target("missing")

    with pytest.raises(PushValidationError):
        workflow.request_push()


def test_clearing_selection_during_dialog_fails_final_confirmation(workflow, registry, prod_and_stage):
    prod, stage = prod_and_stage
    select(workflow, stage, prod)
    workflow.request_push()
    workflow.confirm()
    workflow.confirm()
    workflow.select_source(None)

    with pytest.raises(PushValidationError):
        workflow.confirm()

    assert workflow.state is PushState.IDLE
    assert registry.get(prod.id).last_pushed == prod.last_pushed


def test_confirm_without_dialog_is_rejected(workflow):
    with pytest.raises(PushWorkflowError):
        workflow.confirm()


def test_push_type_is_recorded(workflow, prod_and_stage):
    prod, stage = prod_and_stage
    select(workflow, prod, stage)
    workflow.set_push_type("force-with-lease")

    result = workflow.request_push()

    assert result.push_type is PushType.FORCE_WITH_LEASE


def test_unknown_push_type_is_rejected(workflow):
    with pytest.raises(PushWorkflowError, match="Unknown push type"):
        workflow.set_push_type("rebase")
    assert workflow.push_type is PushType.REGULAR


def test_summary_falls_back_to_url(workflow, registry):
    unlabeled = registry.add_repository("https://github.com/acme/a.git")
    other = registry.add_repository("https://github.com/acme/b.git", "B")
    select(workflow, other, unlabeled)

    workflow.request_push()
    workflow.confirm()
    workflow.confirm()
    result = workflow.confirm()

    assert result.summary.startswith("Pushed from B to https://github.com/acme/a.git at ")


def test_failed_master_push_restarts_confirmations(failing_storage, clock):
    registry = RepositoryRegistry(failing_storage, clock=clock)
    prod = registry.add_repository("https://github.com/acme/prod.git", "Prod")
    stage = registry.add_repository("https://github.com/acme/stage.git", "Stage")
    workflow = PushWorkflow(registry)
    select(workflow, stage, prod)

    workflow.request_push()
    workflow.confirm()
    workflow.confirm()
    failing_storage.failing = True
    with pytest.raises(OSError):
        workflow.confirm()

    assert workflow.state is PushState.IDLE
    assert workflow.confirmation_step == 0
    assert workflow.last_action is None
    assert registry.get(prod.id).last_pushed == prod.last_pushed

    failing_storage.failing = False
    pushed_at = clock.advance(60)
    assert workflow.request_push() is None
    assert workflow.warning_message == CONFIRMATION_MESSAGES[0]
    assert workflow.confirm() is None
    assert workflow.confirm() is None
    result = workflow.confirm()

    assert result.pushed_at == pushed_at
    assert registry.get(prod.id).last_pushed == pushed_at
