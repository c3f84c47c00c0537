# backend/services/ingest.py
# Bulk spreadsheet ingestion for the fabric->machine and orders-plan sheets

import io
import re
import logging
from enum import Enum
from dataclasses import dataclass, field, replace
from datetime import datetime, date, time, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from openpyxl import load_workbook

logger = logging.getLogger(__name__)

MACHINE_DELIMITER = '-'

# Spreadsheet serial dates count days from 1899-12-30 (Unix epoch = serial 25569)
SERIAL_EPOCH_OFFSET = 25569
SECONDS_PER_DAY = 86400
UNIX_EPOCH = datetime(1970, 1, 1)

# Orders-plan column positions
COL_MACHINE = 0
COL_FABRIC = 1
COL_PRODUCTION_RATE = 2
COL_DAYS = 4
COL_CUSTOMER = 5
COL_END_DATE = 7
OTHER_DETAILS = slice(5, 7)


class IngestError(Exception):
    """Base class for spreadsheet ingestion failures."""


class SpreadsheetReadError(IngestError):
    """The uploaded file could not be read as a workbook."""


class MalformedRowError(IngestError):
    """A data row does not have the shape its layout requires."""

    def __init__(self, row_index: int, reason: str):
        self.row_index = row_index
        self.reason = reason
        super().__init__(f"Row {row_index}: {reason}")


class RowKind(Enum):
    HEADER = 'header'
    ORDER = 'order'
    IGNORED = 'ignored'


@dataclass(frozen=True)
class OrderEntry:
    fabric: Any
    production_rate: Any
    customer: Any
    days: Any
    end_date: Any
    other_details: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fabric': self.fabric,
            'productionRate': self.production_rate,
            'customer': self.customer,
            'days': self.days,
            'endDate': self.end_date,
            'otherDetails': list(self.other_details),
        }


@dataclass
class MachineBlock:
    machine_name: Any
    orders: List[OrderEntry] = field(default_factory=list)
    exists: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'machineName': self.machine_name,
            'orders': [order.to_dict() for order in self.orders],
            'exists': self.exists,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MachineBlock':
        orders = [
            OrderEntry(
                fabric=o.get('fabric'),
                production_rate=o.get('productionRate'),
                customer=o.get('customer'),
                days=o.get('days'),
                end_date=o.get('endDate'),
                other_details=tuple(o.get('otherDetails') or ()),
            )
            for o in data.get('orders') or []
        ]
        return cls(
            machine_name=data.get('machineName'),
            orders=orders,
            exists=bool(data.get('exists', False)),
        )


def read_grid(file_content: bytes) -> List[tuple]:
    """Return the rows of the workbook's first sheet as tuples of cell values."""
    try:
        wb = load_workbook(filename=io.BytesIO(file_content), data_only=True)
    except Exception as e:
        logger.error(f"Could not read workbook: {e}")
        raise SpreadsheetReadError(f"Invalid Excel file: {e}") from e

    ws = wb.worksheets[0]
    return [tuple(row) for row in ws.iter_rows(values_only=True)]


def _cell(row: Sequence[Any], index: int) -> Any:
    return row[index] if index < len(row) else None


def _filled(value: Any) -> bool:
    return value is not None and value != ''


def _blank_row(row: Sequence[Any]) -> bool:
    return not any(_filled(v) for v in row)


def consolidate_fabric_machines(rows: Sequence[Sequence[Any]]) -> Dict[str, List[Any]]:
    """
    Group fabric names by machine token for the fabric->machine layout.

    Column 0 holds the fabric name and column 1 a '-' joined list of machine
    tokens. Tokens are used verbatim, so two spellings of one machine end up
    in two groups. Keys keep first-seen order and fabrics keep row order.

    Raises:
        MalformedRowError: a data row has no text in its machine cell
    """
    consolidated: Dict[str, List[Any]] = {}

    for index, row in enumerate(rows):
        if index == 0:
            continue
        if _blank_row(row):
            continue

        fabric_name = _cell(row, 0)
        machines_cell = _cell(row, 1)
        if not _filled(machines_cell):
            raise MalformedRowError(index, 'machine cell is empty')
        if not isinstance(machines_cell, str):
            raise MalformedRowError(index, f'machine cell is not text: {machines_cell!r}')

        for machine in machines_cell.split(MACHINE_DELIMITER):
            consolidated.setdefault(machine, []).append(fabric_name)

    logger.info(f"Consolidated {len(consolidated)} machine groups from {max(len(rows) - 1, 0)} rows")
    return consolidated


def classify_row(row: Sequence[Any], has_current_machine: bool) -> RowKind:
    """
    Row-shape policy for the orders-plan layout.

    The sheet has no row-type column: a filled first cell with an empty second
    cell marks a machine header, a filled second cell under an active machine
    is an order. A machine name with stray data in column 1, or an order row
    missing column 1, is misread; that is a known limit of this heuristic.
    """
    first, second = _cell(row, COL_MACHINE), _cell(row, COL_FABRIC)
    if _filled(first) and not _filled(second):
        return RowKind.HEADER
    if has_current_machine and _filled(second):
        return RowKind.ORDER
    return RowKind.IGNORED


def serial_to_date(serial: float) -> date:
    seconds = (serial - SERIAL_EPOCH_OFFSET) * SECONDS_PER_DAY
    return (UNIX_EPOCH + timedelta(seconds=seconds)).date()


def format_end_date(value: Any) -> Any:
    """
    Render a serial number or date cell in the host locale's short date format.
    A serial no calendar date can hold is passed through as the raw number.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        try:
            return serial_to_date(value).strftime('%x')
        except (OverflowError, ValueError):
            logger.warning(f"End date serial out of range, kept as is: {value!r}")
            return value
    if isinstance(value, (datetime, date)):
        return value.strftime('%x')
    return plain_cell(value)


def plain_cell(value: Any) -> Any:
    """Time-of-day and duration cells as text so the entry stays JSON-ready."""
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, timedelta):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _order_entry(row: Sequence[Any]) -> OrderEntry:
    padded = tuple(row) + (None,) * max(0, COL_END_DATE + 1 - len(row))
    return OrderEntry(
        fabric=plain_cell(padded[COL_FABRIC]),
        production_rate=plain_cell(padded[COL_PRODUCTION_RATE]),
        customer=plain_cell(padded[COL_CUSTOMER]),
        days=plain_cell(padded[COL_DAYS]),
        end_date=format_end_date(padded[COL_END_DATE]),
        other_details=tuple(plain_cell(v) for v in padded[OTHER_DETAILS]),
    )


def segment_order_blocks(
    rows: Sequence[Sequence[Any]],
    classify: Callable[[Sequence[Any], bool], RowKind] = classify_row,
) -> List[MachineBlock]:
    """Split the orders-plan layout into per-machine blocks, in sheet order."""
    blocks: List[MachineBlock] = []
    current: Optional[MachineBlock] = None

    for index, row in enumerate(rows):
        if index == 0:
            continue

        kind = classify(row, current is not None)
        if kind is RowKind.HEADER:
            current = MachineBlock(machine_name=_cell(row, COL_MACHINE))
            blocks.append(current)
        elif kind is RowKind.ORDER:
            current.orders.append(_order_entry(row))

    logger.info(f"Segmented {len(blocks)} machine blocks, "
                f"{sum(len(b.orders) for b in blocks)} orders")
    return blocks


def normalize_name(name: str) -> str:
    return re.sub(r'\s+', '', str(name).lower())


def resolve_machine_existence(blocks: Iterable[MachineBlock],
                              persisted_names: Iterable[Optional[str]]) -> List[MachineBlock]:
    """Return copies of blocks with `exists` set by whitespace/case-insensitive name match."""
    known = {normalize_name(name) for name in persisted_names if name is not None}
    resolved = []
    for block in blocks:
        exists = block.machine_name is not None and normalize_name(block.machine_name) in known
        resolved.append(replace(block, orders=list(block.orders), exists=exists))
    return resolved
