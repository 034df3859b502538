"""
Tests for PlanService.

Covers:
- Plan creation and lookup
- Status changes: client links removed, blocked by active contracts,
  forced cancellation of the plan's contracts
- Plan deletion through the plan cascade
"""

from uuid import uuid4

from gym_kernel.exceptions import CascadeBlockedError
from gym_kernel.models import (
    AuditEvent,
    ClientPlanAssociation,
    Contract,
    ContractStatus,
    PlanStatus,
    TrainingPlan,
)


class TestCreatePlan:
    def test_create_and_get(self, kernel, store):
        result = kernel.plans.create_plan("  Power Lifting ", "Advanced", duration_weeks=12)

        assert result.success
        info = kernel.plans.get_plan(result.data["plan_id"]).data["plan"]
        assert info.name == "Power Lifting"
        assert info.level.value == "advanced"
        assert info.status is PlanStatus.ACTIVE
        assert info.client_ids == ()
        assert store.count(AuditEvent, entity_id=info.id, action="plan_created") == 1

    def test_validation(self, kernel):
        assert kernel.plans.create_plan("", "beginner").error.field == "name"
        assert kernel.plans.create_plan("Plan", "beginner", duration_weeks=0).error.field == "duration_weeks"
        assert kernel.plans.create_plan("Plan", "expert").error.field == "level"

    def test_get_unknown(self, kernel):
        assert kernel.plans.get_plan(uuid4()).error_code == "PLAN_NOT_FOUND"


class TestChangePlanStatus:
    def test_finishing_unlinks_clients(self, kernel, make_client, make_plan, store):
        plan_id = make_plan()
        clients = [make_client(), make_client()]
        for client_id in clients:
            kernel.plan_associations.associate_plan(client_id, plan_id)

        result = kernel.plans.change_plan_status(plan_id, "finished")

        assert result.success
        assert result.data["status"] is PlanStatus.FINISHED
        assert result.data["associations_removed"] == 2
        assert store.get(TrainingPlan, plan_id).status == PlanStatus.FINISHED.value
        assert store.count(ClientPlanAssociation, plan_id=plan_id) == 0

    def test_blocked_by_active_contract(self, kernel, make_client, make_plan, make_contract, store):
        plan_id = make_plan()
        make_contract(make_client(), plan_id)

        result = kernel.plans.change_plan_status(plan_id, PlanStatus.CANCELED)

        assert isinstance(result.error, CascadeBlockedError)
        assert store.get(TrainingPlan, plan_id).status == PlanStatus.ACTIVE.value
        assert store.count(ClientPlanAssociation, plan_id=plan_id) == 1

    def test_forced_cancels_contracts(self, kernel, make_client, make_plan, make_contract, make_progress, store):
        plan_id = make_plan()
        client_id = make_client()
        contract_id = make_contract(client_id, plan_id)
        make_progress(client_id, contract_id)

        result = kernel.plans.change_plan_status(plan_id, "canceled", force=True, reason="coach left")

        assert result.success
        assert result.data["contracts_canceled"] == 1
        assert result.data["eliminated"] == 1
        contract = store.get(Contract, contract_id)
        assert contract.status == ContractStatus.CANCELED.value
        assert contract.cancellation_reason == "coach left"
        assert store.count(ClientPlanAssociation, plan_id=plan_id) == 0
        event = store.all(AuditEvent, entity_id=plan_id, action="plan_status_changed")[0]
        assert event.payload["from"] == "active"
        assert event.payload["to"] == "canceled"

    def test_only_active_plans_change(self, kernel, make_plan):
        plan_id = make_plan()
        kernel.plans.change_plan_status(plan_id, "finished")

        result = kernel.plans.change_plan_status(plan_id, "canceled")

        assert result.error_code == "INVALID_STATE"

    def test_unknown_status(self, kernel, make_plan):
        result = kernel.plans.change_plan_status(make_plan(), "paused")
        assert result.error.field == "status"


class TestDeletePlan:
    def test_delete_unused_plan(self, kernel, make_plan, store):
        plan_id = make_plan()

        result = kernel.plans.delete_plan(plan_id)

        assert result.success
        assert store.get(TrainingPlan, plan_id) is None

    def test_delete_blocked_then_forced(self, kernel, make_client, make_plan, make_contract, store):
        plan_id = make_plan()
        contract_id = make_contract(make_client(), plan_id)

        blocked = kernel.plans.delete_plan(plan_id)
        forced = kernel.plans.delete_plan(plan_id, force=True)

        assert blocked.error_code == "CASCADE_BLOCKED"
        assert forced.success
        assert forced.data["contracts_deleted"] == 1
        assert store.get(Contract, contract_id) is None
        assert store.get(TrainingPlan, plan_id) is None
