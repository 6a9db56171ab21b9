"""Tabular stores the sync reads from and writes back to."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from reminder_sync.core.config import SyncConfig
from reminder_sync.core.errors import PersistenceFailure

logger = logging.getLogger(__name__)

Table = Tuple[List[str], List[List[Any]]]


class TableStore(Protocol):
    """Minimal 2-D range interface the orchestrator depends on."""

    def read_table(self, sheet: str) -> Table:
        ...

    def write_range(self, sheet: str, start_row: int, start_col: int, cells: Sequence[Sequence[Any]]) -> None:
        ...

    def write_table(self, sheet: str, cells: Sequence[Sequence[Any]]) -> None:
        ...

    def append_row(self, sheet: str, cells: Sequence[Any]) -> None:
        ...

    def ensure_sheet(self, sheet: str) -> None:
        ...


def _split_table(values: Sequence[Sequence[Any]]) -> Table:
    rows = [["" if cell is None else cell for cell in row] for row in values]
    while rows and all(cell == "" for cell in rows[-1]):
        rows.pop()
    if not rows:
        return [], []
    header = [str(cell).strip() for cell in rows[0]]
    return header, rows[1:]


class GoogleSheetsStore:
    """Store backed by a Google Sheets document through gspread."""

    def __init__(
        self,
        spreadsheet_id: str,
        service_account_path: Path | None = None,
        credentials_info: Optional[Dict[str, str]] = None,
        client: Any = None,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.service_account_path = service_account_path
        self.credentials_info = credentials_info
        self._client = client
        self._spreadsheet: Any = None

    def _open(self) -> Any:
        if self._spreadsheet is not None:
            return self._spreadsheet

        try:
            import gspread
        except ImportError as exc:  # pragma: no cover - declared dependency
            raise ImportError("gspread is required for Google Sheets storage") from exc

        from google.auth.exceptions import GoogleAuthError

        try:
            client = self._client or self._authorize(gspread)
            self._spreadsheet = client.open_by_key(self.spreadsheet_id)
        except (gspread.exceptions.GSpreadException, GoogleAuthError, OSError, ValueError) as exc:
            raise PersistenceFailure(f"Could not open spreadsheet {self.spreadsheet_id}: {exc}") from exc
        return self._spreadsheet

    def _authorize(self, gspread: Any) -> Any:
        if self.credentials_info:
            return gspread.service_account_from_dict(self.credentials_info)
        if self.service_account_path:
            return gspread.service_account(filename=str(self.service_account_path))
        return gspread.service_account()

    def _worksheet(self, sheet: str, create: bool = False) -> Any:
        import gspread

        spreadsheet = self._open()
        try:
            return spreadsheet.worksheet(sheet)
        except gspread.exceptions.WorksheetNotFound:
            if not create:
                raise PersistenceFailure(f"Worksheet {sheet!r} not found") from None
        except (gspread.exceptions.GSpreadException, OSError) as exc:
            raise PersistenceFailure(f"Could not open worksheet {sheet!r}: {exc}") from exc

        logger.info("Creating worksheet %s", sheet)
        return self._call(f"create {sheet}", spreadsheet.add_worksheet, title=sheet, rows=1000, cols=26)

    @staticmethod
    def _fit(worksheet: Any, last_row: int, last_col: int) -> None:
        if last_row > worksheet.row_count:
            worksheet.add_rows(last_row - worksheet.row_count)
        if last_col > worksheet.col_count:
            worksheet.add_cols(last_col - worksheet.col_count)

    def _call(self, description: str, func, *args, **kwargs) -> Any:
        import gspread

        try:
            return func(*args, **kwargs)
        except (gspread.exceptions.GSpreadException, OSError) as exc:
            raise PersistenceFailure(f"Failed to {description}: {exc}") from exc

    def read_table(self, sheet: str) -> Table:
        worksheet = self._worksheet(sheet)
        values = self._call(
            f"read {sheet}", worksheet.get_all_values, value_render_option="UNFORMATTED_VALUE"
        )
        return _split_table(values)

    def write_range(self, sheet: str, start_row: int, start_col: int, cells: Sequence[Sequence[Any]]) -> None:
        from gspread.utils import rowcol_to_a1

        cells = [list(row) for row in cells]
        if not cells:
            return
        worksheet = self._worksheet(sheet)
        last_row = start_row + len(cells) - 1
        last_col = start_col + max(len(row) for row in cells) - 1
        self._call(f"resize {sheet}", self._fit, worksheet, last_row, last_col)
        target = f"{rowcol_to_a1(start_row, start_col)}:{rowcol_to_a1(last_row, last_col)}"
        self._call(
            f"write {sheet}!{target}",
            worksheet.update,
            range_name=target,
            values=cells,
            value_input_option="RAW",
        )

    def write_table(self, sheet: str, cells: Sequence[Sequence[Any]]) -> None:
        cells = [list(row) for row in cells]
        worksheet = self._worksheet(sheet, create=True)
        self._call(f"clear {sheet}", worksheet.clear)
        if not cells:
            return
        width = max(len(row) for row in cells)
        self._call(f"resize {sheet}", self._fit, worksheet, len(cells), width)
        self._call(
            f"write {sheet}",
            worksheet.update,
            range_name="A1",
            values=cells,
            value_input_option="RAW",
        )

    def append_row(self, sheet: str, cells: Sequence[Any]) -> None:
        worksheet = self._worksheet(sheet, create=True)
        self._call(
            f"append to {sheet}",
            worksheet.append_row,
            list(cells),
            value_input_option="RAW",
            insert_data_option="INSERT_ROWS",
        )

    def ensure_sheet(self, sheet: str) -> None:
        self._worksheet(sheet, create=True)


class ExcelStore:
    """Store backed by a local ``.xlsx`` workbook, saved after every write."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._workbook: Any = None

    def _load(self) -> Any:
        if self._workbook is not None:
            return self._workbook

        try:
            from openpyxl import Workbook, load_workbook
        except ImportError as exc:  # pragma: no cover - declared dependency
            raise ImportError("openpyxl is required for Excel storage") from exc

        if self.path.exists():
            try:
                self._workbook = load_workbook(self.path)
            except (OSError, ValueError, KeyError) as exc:
                raise PersistenceFailure(f"Could not open workbook {self.path}: {exc}") from exc
        else:
            self._workbook = Workbook()
        return self._workbook

    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._workbook.save(self.path)
        except OSError as exc:
            raise PersistenceFailure(f"Could not save workbook {self.path}: {exc}") from exc

    def _sheet(self, sheet: str, create: bool = False) -> Any:
        workbook = self._load()
        if sheet in workbook.sheetnames:
            return workbook[sheet]
        if not create:
            raise PersistenceFailure(f"Worksheet {sheet!r} not found in {self.path}")
        logger.info("Creating worksheet %s in %s", sheet, self.path)
        return workbook.create_sheet(title=sheet)

    def read_table(self, sheet: str) -> Table:
        worksheet = self._sheet(sheet)
        return _split_table([list(row) for row in worksheet.iter_rows(values_only=True)])

    def write_range(self, sheet: str, start_row: int, start_col: int, cells: Sequence[Sequence[Any]]) -> None:
        worksheet = self._sheet(sheet)
        for row_offset, row in enumerate(cells):
            for col_offset, value in enumerate(row):
                worksheet.cell(row=start_row + row_offset, column=start_col + col_offset, value=value)
        self._save()

    def write_table(self, sheet: str, cells: Sequence[Sequence[Any]]) -> None:
        workbook = self._load()
        if sheet in workbook.sheetnames:
            position = workbook.sheetnames.index(sheet)
            workbook.remove(workbook[sheet])
            worksheet = workbook.create_sheet(title=sheet, index=position)
        else:
            worksheet = workbook.create_sheet(title=sheet)
        for row in cells:
            worksheet.append(list(row))
        self._save()

    def append_row(self, sheet: str, cells: Sequence[Any]) -> None:
        worksheet = self._sheet(sheet, create=True)
        worksheet.append(list(cells))
        self._save()

    def ensure_sheet(self, sheet: str) -> None:
        workbook = self._load()
        if sheet not in workbook.sheetnames:
            self._sheet(sheet, create=True)
            self._save()


def build_store(config: SyncConfig) -> TableStore:
    """Pick the storage backend described by the configuration."""

    if config.excel_path is not None:
        logger.info("Using local workbook %s", config.excel_path)
        return ExcelStore(config.excel_path)

    logger.info("Using Google Sheets document %s", config.spreadsheet_id)
    return GoogleSheetsStore(
        spreadsheet_id=config.spreadsheet_id or "",
        service_account_path=config.service_account_path,
        credentials_info=config.service_account_info() if config.has_inline_credentials else None,
    )
