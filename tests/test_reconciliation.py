"""Tests for the reconciliation engine."""

from datetime import date
from decimal import Decimal

import pytest

from conftest import record
from ledgersync.domain.csv_import import BatchImportService
from ledgersync.domain.entities import ChangeSet
from ledgersync.domain.errors import LinkageRevokedError
from ledgersync.domain.reconciliation import ReconciliationEngine


def test_added_records_are_mapped_and_classified(temp_db, engine, linkage, linked_account, sample_categories):
    result = engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5, "Coffee shop")]))

    assert (result.added, result.modified, result.removed, result.errors) == (1, 0, 0, [])
    txn = temp_db.get_transaction_by_external_id("t1")
    assert txn.account_id == linked_account.id
    assert txn.date == date(2024, 3, 1)
    assert txn.amount == Decimal("-4.50")
    assert txn.type == "expense"
    assert txn.source == "provider"
    assert txn.category_id == sample_categories["Dining"]
    assert txn.fingerprint is not None


def test_provider_inflow_becomes_positive_income(temp_db, engine, linkage, sample_categories):
    engine.reconcile(linkage, ChangeSet(added=[record("t1", -2000, "ACME PAYROLL")]))

    txn = temp_db.get_transaction_by_external_id("t1")
    assert txn.amount == Decimal("2000.00")
    assert txn.type == "income"
    assert txn.category_id == sample_categories["Income"]


def test_sign_kept_when_outflows_are_negative(temp_db, linkage, category_service, sample_categories):
    engine = ReconciliationEngine(temp_db, category_service.load_matcher(), outflows_positive=False)

    engine.reconcile(linkage, ChangeSet(added=[record("t1", -4.5)]))

    assert temp_db.get_transaction_by_external_id("t1").amount == Decimal("-4.50")


def test_replaying_added_page_is_idempotent(temp_db, engine, linkage):
    changes = ChangeSet(added=[record("t1", 4.5), record("t2", 12, "Uber trip")])

    first = engine.reconcile(linkage, changes)
    state_after_first = {t.id: (t.amount, t.description) for t in temp_db.list_transactions()}
    second = engine.reconcile(linkage, changes)

    assert first.added == 2
    assert (second.added, second.modified, second.removed) == (0, 0, 0)
    assert {t.id: (t.amount, t.description) for t in temp_db.list_transactions()} == state_after_first


def test_category_hint_matching_a_category_is_used(temp_db, engine, linkage, sample_categories):
    engine.reconcile(linkage, ChangeSet(added=[record("t1", 300, "Delta 0062", category_hint="Travel")]))

    assert temp_db.get_transaction_by_external_id("t1").category_id == sample_categories["Travel"]


def test_unknown_category_hint_falls_back_to_rules(temp_db, engine, linkage, sample_categories):
    engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5, "Coffee shop", category_hint="Food and Drink")]))

    assert temp_db.get_transaction_by_external_id("t1").category_id == sample_categories["Dining"]


def test_merchant_name_used_when_description_missing(temp_db, engine, linkage):
    engine.reconcile(
        linkage,
        ChangeSet(added=[record("t1", 4.5, None, merchant_name="Blue Bottle"), record("t2", 1, None)]),
    )

    assert temp_db.get_transaction_by_external_id("t1").description == "Blue Bottle"
    assert temp_db.get_transaction_by_external_id("t2").description == "Unknown"


def test_record_without_account_uses_sole_linked_account(temp_db, engine, linkage, linked_account):
    engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5, account=None)]))

    assert temp_db.get_transaction_by_external_id("t1").account_id == linked_account.id


def test_transfer_category_sets_transfer_type(temp_db, engine, linkage):
    engine.reconcile(linkage, ChangeSet(added=[record("t1", 50, "Zelle to John")]))

    assert temp_db.get_transaction_by_external_id("t1").type == "transfer"


class TestModified:
    """Tests for the modified phase."""

    def test_overwrites_provider_fields(self, temp_db, engine, linkage, sample_categories):
        engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5, "Coffee shop", pending=True)]))
        original = temp_db.get_transaction_by_external_id("t1")

        result = engine.reconcile(
            linkage,
            ChangeSet(modified=[record("t1", 5.25, "Uber trip", on="2024-03-02", pending=False)]),
        )

        txn = temp_db.get_transaction_by_external_id("t1")
        assert result.modified == 1
        assert txn.id == original.id
        assert txn.amount == Decimal("-5.25")
        assert txn.date == date(2024, 3, 2)
        assert txn.description == "Uber trip"
        assert txn.is_pending is False
        assert txn.category_id == sample_categories["Transportation"]
        assert txn.fingerprint == original.fingerprint

    def test_user_edited_category_survives(self, temp_db, engine, linkage, transaction_service, sample_categories):
        engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5, "Coffee shop")]))
        txn = temp_db.get_transaction_by_external_id("t1")
        transaction_service.update_transaction(txn.id, category_id=sample_categories["Entertainment"])

        engine.reconcile(linkage, ChangeSet(modified=[record("t1", 6, "Uber trip")]))

        updated = temp_db.get_transaction(txn.id)
        assert updated.amount == Decimal("-6.00")
        assert updated.description == "Uber trip"
        assert updated.category_id == sample_categories["Entertainment"]
        assert updated.user_edited is True

    def test_missing_target_is_added(self, temp_db, engine, linkage):
        result = engine.reconcile(linkage, ChangeSet(modified=[record("ghost", 9.99)]))

        assert result.added == 1
        assert result.modified == 0
        assert temp_db.get_transaction_by_external_id("ghost") is not None

    def test_modified_wins_over_added_in_same_page(self, temp_db, engine, linkage):
        result = engine.reconcile(
            linkage,
            ChangeSet(added=[record("t1", 4.5, "Coffee shop")], modified=[record("t1", 7, "Coffee shop large")]),
        )

        txn = temp_db.get_transaction_by_external_id("t1")
        assert (result.added, result.modified) == (1, 1)
        assert txn.amount == Decimal("-7.00")
        assert txn.description == "Coffee shop large"


class TestRemoved:
    """Tests for the removed phase."""

    def test_removes_by_external_id(self, temp_db, engine, linkage):
        engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5)]))

        result = engine.reconcile(linkage, ChangeSet(removed=["t1"]))

        assert result.removed == 1
        assert temp_db.get_transaction_by_external_id("t1") is None

    def test_removing_absent_id_is_a_no_op(self, temp_db, engine, linkage):
        engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5)]))
        engine.reconcile(linkage, ChangeSet(removed=["t1"]))

        result = engine.reconcile(linkage, ChangeSet(removed=["t1", "never-seen"]))

        assert result.removed == 0
        assert result.errors == []


class TestMalformedRecords:
    """Tests for per-record rejection."""

    def test_bad_records_are_reported_and_skipped(self, temp_db, engine, linkage):
        result = engine.reconcile(
            linkage,
            ChangeSet(
                added=[
                    record("good", 4.5),
                    record("bad-date", 4.5, on="not a date"),
                    record("bad-amount", "lots"),
                    record("other-account", 4.5, account="acc-unknown"),
                    record("", 4.5),
                ]
            ),
        )

        assert result.added == 1
        assert len(result.errors) == 4
        assert any("bad-date" in e for e in result.errors)
        assert any("acc-unknown" in e for e in result.errors)
        assert temp_db.get_transaction_by_external_id("good") is not None

    def test_huge_amount_rejects_only_its_record(self, temp_db, engine, linkage):
        result = engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5), record("t2", "1e30")]))

        assert result.added == 1
        assert len(result.errors) == 1
        assert "t2" in result.errors[0]
        assert temp_db.get_transaction_by_external_id("t1") is not None
        assert temp_db.get_transaction_by_external_id("t2") is None

    def test_record_for_account_of_another_linkage(self, temp_db, engine, linkage, registry):
        other = registry.register("item-2", "access-2")
        registry.link_account(other.id, "acc-2", "Savings")

        result = engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5, account="acc-2")]))

        assert result.added == 0
        assert len(result.errors) == 1

    def test_missing_account_with_several_linked_accounts(self, temp_db, engine, linkage, registry):
        registry.link_account(linkage.id, "acc-2", "Savings")

        result = engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5, account=None)]))

        assert result.added == 0
        assert len(result.errors) == 1


def test_page_is_rolled_back_on_failure(temp_db, engine, linkage, monkeypatch):
    """Test that an error partway through a page leaves none of it applied."""
    engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5)]))

    def boom(transaction_id):
        raise RuntimeError("disk full")

    monkeypatch.setattr(temp_db, "delete_transaction", boom)

    with pytest.raises(RuntimeError):
        engine.reconcile(
            linkage,
            ChangeSet(added=[record("t2", 8)], modified=[record("t1", 9)], removed=["t1"]),
        )

    assert temp_db.get_transaction_by_external_id("t2") is None
    assert temp_db.get_transaction_by_external_id("t1").amount == Decimal("-4.50")


def test_revoked_linkage_is_rejected(temp_db, engine, linkage, registry):
    registry.revoke(linkage.id)

    with pytest.raises(LinkageRevokedError):
        engine.reconcile(registry.get(linkage.id), ChangeSet(added=[record("t1", 4.5)]))

    assert temp_db.list_transactions() == []


class TestImportedRowAdoption:
    """Tests for provider records matching an earlier CSV upload."""

    def test_imported_row_is_adopted(self, temp_db, engine, linkage, linked_account):
        importer = BatchImportService(temp_db)
        importer.import_rows(
            [{"date": "2024-03-01", "amount": "-4.50", "description": "Coffee shop"}],
            account_id=linked_account.id,
        )
        imported = temp_db.list_transactions()[0]

        result = engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5, "Coffee shop")]))

        rows = temp_db.list_transactions()
        assert result.added == 0
        assert len(rows) == 1
        assert rows[0].id == imported.id
        assert rows[0].external_id == "t1"
        assert rows[0].source == "provider"

    def test_reuploading_after_adoption_is_still_a_duplicate(self, temp_db, engine, linkage, linked_account):
        importer = BatchImportService(temp_db)
        rows = [{"date": "2024-03-01", "amount": "-4.50", "description": "Coffee shop"}]
        importer.import_rows(rows, account_id=linked_account.id)
        engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5, "Coffee shop")]))

        again = importer.import_rows(rows, account_id=linked_account.id)

        assert again.imported == 0
        assert again.duplicates == 1
        assert len(temp_db.list_transactions()) == 1


class TestStatementAfterSync:
    """Tests for uploading a statement that overlaps synced transactions."""

    def test_synced_row_counts_as_duplicate(self, temp_db, engine, linkage, linked_account):
        engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5, "Coffee shop")]))

        result = BatchImportService(temp_db).import_rows(
            [
                {"date": "2024-03-01", "amount": "-4.50", "description": "Coffee shop"},
                {"date": "2024-03-02", "amount": "-9.00", "description": "Bookstore"},
            ],
            account_id=linked_account.id,
        )

        assert result.imported == 1
        assert result.duplicates == 1
        rows = temp_db.list_transactions()
        assert len(rows) == 2
        assert sorted(t.source for t in rows) == ["import", "provider"]

    def test_same_content_on_another_account_is_imported(
        self, temp_db, engine, linkage, linked_account, sample_account
    ):
        engine.reconcile(linkage, ChangeSet(added=[record("t1", 4.5, "Coffee shop")]))

        result = BatchImportService(temp_db).import_rows(
            [{"date": "2024-03-01", "amount": "-4.50", "description": "Coffee shop"}],
            account_id=sample_account.id,
        )

        assert result.imported == 1
        assert len(temp_db.list_transactions()) == 2
