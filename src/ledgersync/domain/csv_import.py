"""Batch (CSV) import domain service."""

import csv
import logging
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from ledgersync.database.base import Database
from ledgersync.domain.category import CategoryService, transaction_type_for
from ledgersync.domain.column_mapping import ColumnMappingService
from ledgersync.domain.entities import (
    ColumnMapping,
    ImportResult,
    TransactionDraft,
    SOURCE_IMPORT,
)
from ledgersync.domain.errors import (
    MalformedRecordError,
    NotFoundError,
    ValidationError,
    account_not_found,
)
from ledgersync.domain.idempotency import compute_fingerprint, insert_if_absent
from ledgersync.utils.amount_parser import parse_amount
from ledgersync.utils.date_parser import parse_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldMap:
    """Which row keys hold the date, amount and description."""

    date: str = "date"
    amount: Optional[str] = "amount"
    description: str = "description"
    debit: Optional[str] = None
    credit: Optional[str] = None

    @classmethod
    def from_column_mapping(cls, mapping: ColumnMapping) -> "FieldMap":
        return cls(
            date=mapping.date_column,
            amount=mapping.amount_column,
            description=mapping.description_column,
            debit=mapping.debit_column,
            credit=mapping.credit_column,
        )

    @property
    def is_debit_credit(self) -> bool:
        return bool(self.debit and self.credit)

    def required_columns(self) -> set[str]:
        columns = {self.date, self.description}
        if self.is_debit_credit:
            columns |= {self.debit, self.credit}
        else:
            columns.add(self.amount)
        return columns


DEFAULT_FIELD_MAP = FieldMap()


class BatchImportService:
    """Imports user-supplied rows into one account.

    Rows are fingerprinted on (account, date, amount, description) so the same
    statement can be uploaded any number of times. The whole batch commits as
    one unit; bad rows are reported and skipped.
    """

    def __init__(self, db: Database):
        """Initialize batch import service.

        Args:
            db: Database instance
        """
        self.db = db
        self.category_service = CategoryService(db)
        self.mapping_service = ColumnMappingService(db)

    def import_rows(
        self,
        rows: Iterable[Mapping[str, Any]],
        account_id: int,
        mapping: Optional[ColumnMapping | FieldMap] = None,
        institution: Optional[str] = None,
    ) -> ImportResult:
        """Import ordered rows of {column: value}.

        Args:
            rows: Parsed rows, e.g. from csv.DictReader
            account_id: Target account
            mapping: Column projection; when omitted, the saved mapping for
                (institution, account) is used, else date/amount/description
            institution: Institution whose saved mapping to use

        Returns:
            ImportResult with imported, duplicate and error counts

        Raises:
            NotFoundError: If the account doesn't exist
        """
        if self.db.get_account(account_id) is None:
            raise NotFoundError(account_not_found(account_id))

        field_map = self._resolve_field_map(mapping, institution, account_id)
        matcher = self.category_service.load_matcher()
        categories = {c.id: c for c in self.category_service.list_categories()}
        result = ImportResult()

        with self.db.unit_of_work():
            for row_num, row in enumerate(rows, start=1):
                try:
                    draft = self._row_to_draft(row, field_map, account_id, matcher, categories)
                except MalformedRecordError as e:
                    result.errors.append(f"Row {row_num}: {e}")
                    continue

                # Already synced from the provider, or an identical row earlier in this batch
                if self.db.find_transaction_by_content(account_id, draft.fingerprint) is not None:
                    result.duplicates += 1
                    continue

                outcome = insert_if_absent(self.db, draft)
                if outcome.inserted:
                    result.imported += 1
                else:
                    result.duplicates += 1

        logger.info(
            "Imported %d row(s) into account %s (%d duplicate, %d rejected)",
            result.imported,
            account_id,
            result.duplicates,
            len(result.errors),
        )
        return result

    def import_csv(
        self,
        csv_file_path: str,
        account_id: int,
        institution: Optional[str] = None,
        mapping: Optional[ColumnMapping | FieldMap] = None,
    ) -> ImportResult:
        """Import a CSV file, detecting its delimiter.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValidationError: If the file has no header or lacks mapped columns
            NotFoundError: If the account doesn't exist
        """
        csv_path = Path(csv_file_path)
        if not csv_path.exists():
            raise FileNotFoundError(f"CSV file not found: {csv_file_path}")

        field_map = self._resolve_field_map(mapping, institution, account_id)

        with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
            sample = f.read(4096)
            f.seek(0)
            try:
                delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
            except csv.Error:
                delimiter = ","

            reader = csv.DictReader(f, delimiter=delimiter)
            if reader.fieldnames is None:
                raise ValidationError("CSV file has no columns")

            headers = {name.strip() for name in reader.fieldnames if name}
            missing = field_map.required_columns() - headers
            if missing:
                raise ValidationError(f"CSV file missing required columns: {', '.join(sorted(missing))}")

            rows = [{(k or "").strip(): v for k, v in row.items()} for row in reader]

        return self.import_rows(rows, account_id, mapping=field_map)

    def _resolve_field_map(
        self,
        mapping: Optional[ColumnMapping | FieldMap],
        institution: Optional[str],
        account_id: int,
    ) -> FieldMap:
        if isinstance(mapping, FieldMap):
            return mapping
        if mapping is not None:
            return FieldMap.from_column_mapping(mapping)
        if institution:
            saved = self.mapping_service.get_mapping(institution, account_id)
            if saved is not None:
                return FieldMap.from_column_mapping(saved)
            logger.debug("No saved mapping for %s; using default columns", institution)
        return DEFAULT_FIELD_MAP

    def _row_to_draft(self, row, field_map, account_id, matcher, categories) -> TransactionDraft:
        raw_date = _cell(row, field_map.date)
        description = _cell(row, field_map.description)
        if not raw_date or not description:
            raise MalformedRecordError("missing date or description")

        try:
            txn_date = parse_date(raw_date)
        except ValueError:
            raise MalformedRecordError(f"could not parse date '{raw_date}'") from None

        amount = _row_amount(row, field_map)

        category_id = matcher.classify(description)
        category = categories.get(category_id) if category_id is not None else None

        return TransactionDraft(
            account_id=account_id,
            date=txn_date,
            amount=amount,
            description=description,
            category_id=category_id,
            type=transaction_type_for(amount, category),
            source=SOURCE_IMPORT,
            fingerprint=compute_fingerprint(account_id, txn_date, amount, description),
        )


def _cell(row: Mapping[str, Any], column: Optional[str]) -> Optional[str]:
    if not column:
        return None
    value = row.get(column)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _row_amount(row: Mapping[str, Any], field_map: FieldMap) -> Decimal:
    """Signed amount: a single column as-is, or credit minus debit."""
    try:
        if field_map.is_debit_credit:
            debit = _cell(row, field_map.debit)
            credit = _cell(row, field_map.credit)
            if debit is None and credit is None:
                raise MalformedRecordError("invalid amount")
            credit_amount = parse_amount(credit) if credit else Decimal("0")
            if credit_amount > 0:
                return credit_amount
            return -abs(parse_amount(debit)) if debit else Decimal("0.00")

        raw = row.get(field_map.amount) if field_map.amount else None
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            raise MalformedRecordError("invalid amount")
        return parse_amount(raw)
    except MalformedRecordError:
        raise
    except ValueError:
        raise MalformedRecordError("invalid amount") from None
