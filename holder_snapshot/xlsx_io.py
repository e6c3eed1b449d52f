from typing import Dict, Mapping

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font

from .ledger import BalanceMap, format_units

XLSX_HEADER = ["Address", "Balance", "% Owned"]


def _fill_sheet(ws, balances: BalanceMap, decimals: int):
    for col_idx, header in enumerate(XLSX_HEADER, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.font = Font(bold=True)

    rows = sorted(balances.items(), key=lambda kv: kv[1], reverse=True)
    for row, (address, balance) in enumerate(rows, start=2):
        ws.cell(row=row, column=1, value=address)
        ws.cell(row=row, column=2, value=float(format_units(balance, decimals)))
        share = ws.cell(row=row, column=3, value=f"=B{row}/SUM(B:B)")
        share.number_format = "0.00%"

    ws.column_dimensions["A"].width = 46
    ws.column_dimensions["B"].width = 24
    ws.column_dimensions["C"].width = 10


def write_balances_workbook(path: str, sheets: Mapping[str, BalanceMap], decimals: int = 18) -> str:
    """
    Write one sheet per label: Address | Balance | % Owned.
    Balances are converted to token units; the share column is a live formula.
    """
    if not sheets:
        raise ValueError("No balance sheets to write")
    wb = Workbook()
    wb.remove(wb.active)
    for label, balances in sheets.items():
        _fill_sheet(wb.create_sheet(title=label), balances, decimals)
    wb.save(path)
    return path


def read_balances_workbook(path: str) -> Dict[str, Dict[str, float]]:
    wb = load_workbook(path)
    out: Dict[str, Dict[str, float]] = {}
    for ws in wb.worksheets:
        rows = ws.iter_rows(min_row=2, max_col=2, values_only=True)
        out[ws.title] = {address: balance for address, balance in rows if address}
    return out
