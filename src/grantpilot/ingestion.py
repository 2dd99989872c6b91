from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from openpyxl import load_workbook


@dataclass(frozen=True, slots=True)
class SheetContract:
    sheet_name: str
    required_columns: tuple[str, ...]
    required_non_empty_columns: tuple[str, ...] = ()
    optional_columns: tuple[str, ...] = ()

    @property
    def columns(self) -> tuple[str, ...]:
        return self.required_columns + self.optional_columns


@dataclass(frozen=True, slots=True)
class IngestionReport:
    sheet_name: str
    records_parsed: int
    rows_skipped: int = 0


class ContractError(ValueError):
    pass


RUBRIC_CONTRACT = SheetContract(
    sheet_name="Rubric",
    required_columns=("Criterion ID", "Name", "Weight", "Required Fields"),
    required_non_empty_columns=("Criterion ID", "Weight", "Required Fields"),
    optional_columns=("Description",),
)

QUESTION_CONTRACT = SheetContract(
    sheet_name="Questions",
    required_columns=("Question ID", "Priority", "Type", "Dependencies"),
    required_non_empty_columns=("Question ID", "Priority"),
    optional_columns=(
        "Text",
        "Text Resolver",
        "Options",
        "Options Resolver",
        "Condition",
        "Required",
        "Help Text",
        "Help Resolver",
        "Placeholder",
        "Placeholder Resolver",
    ),
)

BUDGET_RULES_CONTRACT = SheetContract(
    sheet_name="Budget Rules",
    required_columns=("Setting", "Value"),
    required_non_empty_columns=("Setting", "Value"),
)


def _normalize(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def _sheet_header_index(sheet_headers: Iterable[object]) -> dict[str, int]:
    seen: dict[str, int] = {}
    for index, header in enumerate(sheet_headers):
        key = _normalize(header)
        if not key:
            continue
        if key in seen:
            raise ContractError(f"Duplicate header detected: {header}")
        seen[key] = index
    return seen


def _read_rows(workbook_path: Path | str, contract: SheetContract) -> tuple[dict[str, int], list[tuple]]:
    wb = load_workbook(workbook_path, read_only=True, data_only=True)
    try:
        if contract.sheet_name not in wb.sheetnames:
            raise ContractError(f"Missing sheet: {contract.sheet_name}")
        rows = list(wb[contract.sheet_name].iter_rows(min_row=1, values_only=True))
    finally:
        wb.close()
    if not rows:
        raise ContractError(f"Sheet '{contract.sheet_name}' is empty")
    return _sheet_header_index(rows[0]), rows[1:]


def validate_sheet_headers(workbook_path: Path | str, contract: SheetContract) -> dict[str, int]:
    header_map, _ = _read_rows(workbook_path, contract)
    missing = [col for col in contract.required_columns if _normalize(col) not in header_map]
    if missing:
        raise ContractError(
            f"Sheet '{contract.sheet_name}' is missing required columns: {', '.join(missing)}"
        )
    return header_map


def ingest_sheet_with_contract(workbook_path: Path | str, contract: SheetContract) -> tuple[list[dict], IngestionReport]:
    """Rows as dicts keyed by the contract's column names; blank rows are skipped."""
    header_map, rows = _read_rows(workbook_path, contract)
    missing = [col for col in contract.required_columns if _normalize(col) not in header_map]
    if missing:
        raise ContractError(
            f"Sheet '{contract.sheet_name}' is missing required columns: {', '.join(missing)}"
        )

    present = [col for col in contract.columns if _normalize(col) in header_map]
    out: list[dict] = []
    skipped = 0
    for row_num, row in enumerate(rows, start=2):
        record = {}
        for col in present:
            index = header_map[_normalize(col)]
            value = row[index] if index < len(row) else None
            if isinstance(value, str):
                value = value.strip()
            record[col] = value

        if all(v in (None, "") for v in record.values()):
            skipped += 1
            continue

        for col in contract.required_non_empty_columns:
            if record.get(col) in (None, ""):
                raise ContractError(
                    f"Sheet '{contract.sheet_name}' row {row_num} has empty required value for column '{col}'"
                )
        out.append(record)

    if not out:
        raise ContractError(f"Sheet '{contract.sheet_name}' contains no valid records")
    return out, IngestionReport(sheet_name=contract.sheet_name, records_parsed=len(out), rows_skipped=skipped)
