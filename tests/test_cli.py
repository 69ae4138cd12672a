"""End-to-end tests for the command line interface."""

from conftest import FakeProvider, page, record
from ledgersync.cli.main import cli
from ledgersync.config import Settings
from ledgersync.domain.errors import ProviderError


def run(cli_runner, temp_db, *args, obj=None, input=None):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args], obj=obj, input=input)


def test_help_does_not_need_database(cli_runner):
    result = cli_runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "sync" in result.output


def test_init_categories_is_rerunnable(cli_runner, temp_db):
    first = run(cli_runner, temp_db, "init-categories")
    second = run(cli_runner, temp_db, "init-categories")

    assert first.exit_code == 0
    assert "Successfully created 17 categories." in first.output
    assert "Default categories already exist." in second.output


class TestAccounts:
    """Tests for account commands."""

    def test_create_and_list(self, cli_runner, temp_db):
        created = run(cli_runner, temp_db, "account", "create", "Chase Checking", "--institution", "Chase")
        listed = run(cli_runner, temp_db, "account", "list")

        assert created.exit_code == 0
        assert "Created account 'Chase Checking' (ID: 1)" in created.output
        assert "Chase Checking" in listed.output
        assert "manual" in listed.output

    def test_duplicate_name(self, cli_runner, temp_db, sample_account):
        result = run(cli_runner, temp_db, "account", "create", "Test Account")

        assert result.exit_code == 1
        assert "already exists" in result.output


class TestLinkages:
    """Tests for linkage commands."""

    def test_register_link_and_revoke(self, cli_runner, temp_db):
        registered = run(
            cli_runner, temp_db, "linkage", "register", "item-9", "--access-token", "access-9", "--institution", "Chase"
        )
        linked = run(cli_runner, temp_db, "linkage", "link-account", "1", "acc-9", "Chase Checking")
        revoked = run(cli_runner, temp_db, "linkage", "revoke", "1")
        listed = run(cli_runner, temp_db, "linkage", "list")

        assert registered.exit_code == 0
        assert "Registered linkage 1 for 'Chase'" in registered.output
        assert "Linked 'Chase Checking'" in linked.output
        assert revoked.exit_code == 0
        assert "revoked" in listed.output
        assert "access-9" not in listed.output

    def test_token_prompt(self, cli_runner, temp_db):
        result = run(cli_runner, temp_db, "linkage", "register", "item-9", input="access-secret\n")

        assert result.exit_code == 0
        assert "Registered linkage 1" in result.output

    def test_revoke_unknown(self, cli_runner, temp_db):
        result = run(cli_runner, temp_db, "linkage", "revoke", "42")

        assert result.exit_code == 1
        assert "Linkage 42 not found" in result.output


class TestSync:
    """Tests for the sync and sync-log commands."""

    def test_sync_one_linkage(self, cli_runner, temp_db, linkage, sample_categories):
        provider = FakeProvider({None: page(added=[record("t1", 4.5), record("t2", 12, "Uber trip")])})

        result = run(cli_runner, temp_db, "sync", str(linkage.id), obj={"provider_factory": lambda l: provider})

        assert result.exit_code == 0
        assert "First Bank: ok (+2 added, ~0 modified, -0 removed)" in result.output

        listed = run(cli_runner, temp_db, "transaction", "list")
        assert "Coffee shop" in listed.output
        assert "provider" in listed.output

    def test_sync_all_reports_failure(self, cli_runner, temp_db, linkage):
        provider = FakeProvider({None: ProviderError("boom", code="ITEM_LOGIN_REQUIRED")})

        result = run(cli_runner, temp_db, "sync", "--all", obj={"provider_factory": lambda l: provider})
        log = run(cli_runner, temp_db, "sync-log")

        assert result.exit_code == 1
        assert "First Bank: failed: ITEM_LOGIN_REQUIRED: boom" in result.output
        assert "First Bank" in log.output
        assert "error" in log.output

    def test_sync_all_with_nothing_linked(self, cli_runner, temp_db):
        result = run(cli_runner, temp_db, "sync", "--all", obj={"provider_factory": lambda l: FakeProvider({})})

        assert result.exit_code == 0
        assert "No active linkages to sync." in result.output

    def test_sync_needs_exactly_one_target(self, cli_runner, temp_db):
        neither = run(cli_runner, temp_db, "sync")
        both = run(cli_runner, temp_db, "sync", "1", "--all")

        assert neither.exit_code == 1
        assert both.exit_code == 1

    def test_sync_without_credentials(self, cli_runner, temp_db, linkage):
        result = run(cli_runner, temp_db, "sync", "--all", obj={"settings": Settings()})

        assert result.exit_code == 1
        assert "PLAID_CLIENT_ID" in result.output

    def test_empty_sync_log(self, cli_runner, temp_db):
        result = run(cli_runner, temp_db, "sync-log")

        assert "No sync runs recorded." in result.output


class TestImport:
    """Tests for CSV import and mappings."""

    def test_import_twice(self, cli_runner, temp_db, sample_account, tmp_path):
        csv_file = tmp_path / "march.csv"
        csv_file.write_text("date,amount,description\n2024-03-01,-4.50,Coffee shop\n2024-03-02,-12.00,Uber trip\n")

        first = run(cli_runner, temp_db, "import", str(csv_file), "--account", "Test Account")
        second = run(cli_runner, temp_db, "import", str(csv_file), "--account", str(sample_account.id))

        assert first.exit_code == 0
        assert "Imported: 2 transactions" in first.output
        assert "Imported: 0 transactions" in second.output
        assert "Skipped: 2 duplicates" in second.output

    def test_import_with_saved_mapping(self, cli_runner, temp_db, sample_account, tmp_path):
        csv_file = tmp_path / "capone.csv"
        csv_file.write_text("Transaction Date,Description,Debit,Credit\n2024-03-01,Grocery run,42.10,\n")

        saved = run(
            cli_runner,
            temp_db,
            "mapping",
            "save",
            "Capital One",
            "--date-column",
            "Transaction Date",
            "--description-column",
            "Description",
            "--debit-column",
            "Debit",
            "--credit-column",
            "Credit",
        )
        listed = run(cli_runner, temp_db, "mapping", "list")
        imported = run(
            cli_runner, temp_db, "import", str(csv_file), "--account", "Test Account", "--institution", "Capital One"
        )

        assert "Saved mapping 1 for 'Capital One'" in saved.output
        assert "debit=Debit, credit=Credit" in listed.output
        assert "Imported: 1 transactions" in imported.output

    def test_import_missing_columns(self, cli_runner, temp_db, sample_account, tmp_path):
        csv_file = tmp_path / "bad.csv"
        csv_file.write_text("when,what\n2024-03-01,Coffee\n")

        result = run(cli_runner, temp_db, "import", str(csv_file), "--account", "Test Account")

        assert result.exit_code == 1
        assert "missing required columns" in result.output

    def test_import_unknown_account(self, cli_runner, temp_db, tmp_path):
        csv_file = tmp_path / "march.csv"
        csv_file.write_text("date,amount,description\n2024-03-01,-4.50,Coffee shop\n")

        result = run(cli_runner, temp_db, "import", str(csv_file), "--account", "Nope")

        assert result.exit_code == 1
        assert "Account 'Nope' not found" in result.output


def test_balance_set_and_list(cli_runner, temp_db, sample_account):
    first = run(cli_runner, temp_db, "balance", "set", "Test Account", "100", "--date", "2024-03-31")
    second = run(cli_runner, temp_db, "balance", "set", "Test Account", "2,450.10", "--date", "2024-03-31")
    listed = run(cli_runner, temp_db, "balance", "list", "--account", "Test Account")

    assert first.exit_code == 0
    assert "Balance for 2024-03-31: $2,450.10" in second.output
    assert listed.output.count("2024-03-31") == 1
    assert "(manual)" in listed.output


class TestTransactions:
    """Tests for transaction commands."""

    def test_add_update_delete(self, cli_runner, temp_db, sample_account, sample_categories):
        added = run(
            cli_runner,
            temp_db,
            "transaction",
            "add",
            "--account",
            "Test Account",
            "--date",
            "2024-01-15",
            "--amount",
            "-50.00",
            "--description",
            "Starbucks",
        )
        updated = run(cli_runner, temp_db, "transaction", "update", "1", "--category", "Entertainment")
        listed = run(cli_runner, temp_db, "transaction", "list", "--category", "Entertainment")
        deleted = run(cli_runner, temp_db, "transaction", "delete", "1", "--yes")
        after = run(cli_runner, temp_db, "transaction", "list")

        assert added.exit_code == 0
        assert "Created transaction 1" in added.output
        assert "Updated transaction 1" in updated.output
        assert "Starbucks" in listed.output
        assert "Deleted transaction 1" in deleted.output
        assert "No transactions found." in after.output

    def test_add_with_bad_amount(self, cli_runner, temp_db, sample_account):
        result = run(
            cli_runner,
            temp_db,
            "transaction",
            "add",
            "--account",
            "Test Account",
            "--amount",
            "lots",
            "--description",
            "Mystery",
        )

        assert result.exit_code == 1
        assert "Could not parse amount" in result.output

    def test_update_unknown_category(self, cli_runner, temp_db, sample_account):
        run(
            cli_runner,
            temp_db,
            "transaction",
            "add",
            "--account",
            "Test Account",
            "--amount",
            "-5",
            "--description",
            "Lunch",
        )

        result = run(cli_runner, temp_db, "transaction", "update", "1", "--category", "Nope")

        assert result.exit_code == 1
        assert "Category 'Nope' not found" in result.output

    def test_list_reversed_range(self, cli_runner, temp_db):
        result = run(
            cli_runner, temp_db, "transaction", "list", "--start-date", "2024-03-02", "--end-date", "2024-03-01"
        )

        assert result.exit_code == 1
        assert "Start date must be before" in result.output


def test_bad_timeout_setting_is_reported(cli_runner, temp_db):
    result = cli_runner.invoke(
        cli, ["--db-path", temp_db.database_path, "account", "list"], env={"PLAID_TIMEOUT": "soon"}
    )

    assert result.exit_code == 1
    assert "Error: Invalid PLAID_TIMEOUT 'soon'" in result.output
