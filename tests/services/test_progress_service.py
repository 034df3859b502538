"""Tests for ProgressService."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from gym_kernel.exceptions import ContractOwnershipError, InvalidIdentifierError
from gym_kernel.models import ProgressEntry


@pytest.fixture
def enrolled(make_client, make_plan, make_contract):
    client_id = make_client()
    return client_id, make_contract(client_id, make_plan())


class TestRecordProgress:
    def test_record(self, kernel, enrolled, store):
        client_id, contract_id = enrolled

        result = kernel.progress.record_progress(
            client_id,
            contract_id,
            weight_kg="81.2",
            body_fat_pct=18,
            measurements={"waist_cm": 84},
            comments="Good week",
        )

        assert result.success
        entry = store.get(ProgressEntry, result.data["entry_id"])
        assert entry.entry_date == date(2024, 1, 1)
        assert entry.weight_kg == Decimal("81.2")
        assert entry.measurements == {"waist_cm": 84}

    def test_contract_of_another_client(self, kernel, enrolled, make_client):
        _, contract_id = enrolled

        result = kernel.progress.record_progress(make_client(), contract_id, weight_kg=70)

        assert isinstance(result.error, ContractOwnershipError)

    def test_canceled_contract(self, kernel, enrolled):
        client_id, contract_id = enrolled
        kernel.contracts.cancel_contract(contract_id, "stop")

        result = kernel.progress.record_progress(client_id, contract_id, weight_kg=70)

        assert result.error_code == "INVALID_STATE"

    def test_future_date(self, kernel, enrolled):
        client_id, contract_id = enrolled
        result = kernel.progress.record_progress(client_id, contract_id, entry_date=date(2024, 1, 2))
        assert result.error.field == "entry_date"

    @pytest.mark.parametrize("field, kwargs", [("weight_kg", {"weight_kg": -1}), ("body_fat_pct", {"body_fat_pct": 150})])
    def test_out_of_range_measures(self, kernel, enrolled, field, kwargs):
        client_id, contract_id = enrolled
        result = kernel.progress.record_progress(client_id, contract_id, **kwargs)
        assert result.error.field == field

    def test_unknown_contract(self, kernel, enrolled):
        client_id, _ = enrolled
        assert kernel.progress.record_progress(client_id, uuid4()).error_code == "CONTRACT_NOT_FOUND"

    def test_malformed_contract_id(self, kernel, enrolled):
        client_id, _ = enrolled
        with pytest.raises(InvalidIdentifierError):
            kernel.progress.record_progress(client_id, "contract-1")


class TestProgressReads:
    def test_lists_in_date_order(self, kernel, enrolled, make_progress):
        client_id, contract_id = enrolled
        later = make_progress(client_id, contract_id)
        earlier = make_progress(client_id, contract_id, entry_date=date(2024, 1, 1) - timedelta(days=7))

        by_contract = kernel.progress.list_by_contract(contract_id)
        by_client = kernel.progress.list_by_client(client_id)

        assert [e.id for e in by_contract] == [earlier, later]
        assert [e.id for e in by_client] == [earlier, later]

    def test_delete_entry(self, kernel, enrolled, make_progress, store):
        client_id, contract_id = enrolled
        entry_id = make_progress(client_id, contract_id)

        assert kernel.progress.delete_progress_entry(entry_id).success
        assert store.get(ProgressEntry, entry_id) is None
        assert kernel.progress.delete_progress_entry(entry_id).error_code == "PROGRESS_ENTRY_NOT_FOUND"


class TestUpdateProgress:
    def test_update_fields(self, kernel, enrolled, make_progress, store):
        client_id, contract_id = enrolled
        entry_id = make_progress(client_id, contract_id, comments="first try")

        result = kernel.progress.update_progress_entry(
            entry_id,
            entry_date=date(2023, 12, 30),
            weight_kg="79.9",
            measurements={"waist_cm": 82},
        )

        assert result.success
        assert result.data["updated_fields"] == ["entry_date", "measurements", "weight_kg"]
        entry = store.get(ProgressEntry, entry_id)
        assert entry.entry_date == date(2023, 12, 30)
        assert entry.weight_kg == Decimal("79.9")
        assert entry.measurements == {"waist_cm": 82}
        assert entry.comments == "first try"

    @pytest.mark.parametrize(
        "kwargs, field",
        [
            ({"entry_date": date(2024, 1, 2)}, "entry_date"),
            ({"weight_kg": 0}, "weight_kg"),
            ({"body_fat_pct": "101"}, "body_fat_pct"),
            ({}, "changes"),
        ],
    )
    def test_invalid_changes(self, kernel, enrolled, make_progress, store, kwargs, field):
        client_id, contract_id = enrolled
        entry_id = make_progress(client_id, contract_id)

        result = kernel.progress.update_progress_entry(entry_id, **kwargs)

        assert result.error.field == field
        assert store.get(ProgressEntry, entry_id).weight_kg == Decimal("80.5")

    def test_unknown_entry(self, kernel):
        result = kernel.progress.update_progress_entry(uuid4(), comments="hello")
        assert result.error_code == "PROGRESS_ENTRY_NOT_FOUND"
