"""
CSV and Excel export of captured contacts.
"""

import io
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd
from openpyxl.utils import get_column_letter

from .records import ContactRecord, Relevancy

logger = logging.getLogger(__name__)

CONTACTS_SHEET = "Business Contacts"
SUMMARY_SHEET = "Summary"
MAX_COLUMN_WIDTH = 50

CSV_MIMETYPE = "text/csv"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

EXPORT_COLUMNS = [
    ("ID", "id"),
    ("Rep", "rep"),
    ("Relevancy", "relevancy"),
    ("Company Name", "company_name"),
    ("First Name", "first_name"),
    ("Last Name", "last_name"),
    ("Email", "email"),
    ("Phone", "phone"),
    ("WhatsApp", "whatsapp"),
    ("Partner Details", "partner_details"),
    ("Target Regions", "target_regions"),
    ("Line of Business", "lob"),
    ("Tier", "tier"),
    ("Grades", "grades"),
    ("Volume", "volume"),
    ("Add Associates", "add_associates"),
    ("Notes", "notes"),
    ("Submitted At", "submitted_at"),
]


class ExportError(Exception):
    """Raised when there is nothing to export."""


DateBound = Union[date, datetime, str, None]


def _as_datetime(value: DateBound, end_of_day: bool = False) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = value.strip()
        # anything longer than YYYY-MM-DD carries a time part
        value = datetime.fromisoformat(value) if len(value) > 10 else date.fromisoformat(value)
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.max if end_of_day else time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def filter_records(
    records: Iterable[ContactRecord],
    relevancy: Any = None,
    date_from: DateBound = None,
    date_to: DateBound = None,
    company: Optional[str] = None,
    search: Optional[str] = None
) -> List[ContactRecord]:
    """Apply the export filters; unset filters match everything.

    Date bounds are inclusive. A bare date as ``date_to`` covers that whole day.
    ``search`` is a case-insensitive substring of first name, last name,
    company or email.
    """
    wanted = Relevancy.parse(relevancy)
    start = _as_datetime(date_from)
    end = _as_datetime(date_to, end_of_day=True)
    needle = company.strip().lower() if company else ""
    term = search.strip().lower() if search else ""

    result = []
    for record in records:
        if wanted and record.relevancy is not wanted:
            continue
        if start and record.submitted_at < start:
            continue
        if end and record.submitted_at > end:
            continue
        if needle and needle not in (record.company_name or "").lower():
            continue
        if term and not any(
            term in (value or "").lower()
            for value in (record.first_name, record.last_name, record.company_name, record.email)
        ):
            continue
        result.append(record)
    return result


def _cell(record: ContactRecord, attr: str, timestamps: str) -> Any:
    value = getattr(record, attr)
    if attr in ("partner_details", "target_regions"):
        return ", ".join(value)
    if attr == "relevancy":
        return value.value if value else ""
    if attr == "add_associates":
        return "Yes" if value else "No"
    if attr == "submitted_at":
        if timestamps == "iso":
            return value.isoformat()
        return value.strftime("%Y-%m-%d %H:%M:%S")
    return value if value is not None else ""


def records_to_frame(records: List[ContactRecord], timestamps: str = "iso") -> pd.DataFrame:
    rows = [
        {header: _cell(record, attr, timestamps) for header, attr in EXPORT_COLUMNS}
        for record in records
    ]
    return pd.DataFrame(rows, columns=[header for header, _ in EXPORT_COLUMNS])


def summary_frame(records: List[ContactRecord]) -> pd.DataFrame:
    rows = [
        ("Total Submissions", len(records)),
        ("Unique Companies", len({r.company_name for r in records})),
        ("High Relevancy", sum(1 for r in records if r.relevancy is Relevancy.HIGH)),
        ("Medium Relevancy", sum(1 for r in records if r.relevancy is Relevancy.MEDIUM)),
        ("Low Relevancy", sum(1 for r in records if r.relevancy is Relevancy.LOW)),
        ("Partners with Associates", sum(1 for r in records if r.add_associates)),
    ]
    return pd.DataFrame(rows, columns=["Metric", "Value"])


def submission_stats(records: Iterable[ContactRecord], now: Optional[datetime] = None) -> Dict[str, int]:
    """Dashboard counters: total, unique companies, last seven days, high relevancy."""
    records = list(records)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    week_ago = now - timedelta(days=7)
    return {
        "total": len(records),
        "unique_companies": len({r.company_name for r in records}),
        "this_week": sum(1 for r in records if r.submitted_at >= week_ago),
        "high_relevancy": sum(1 for r in records if r.relevancy is Relevancy.HIGH),
    }


def _require_records(records: Iterable[ContactRecord]) -> List[ContactRecord]:
    records = list(records)
    if not records:
        raise ExportError("No data to export")
    return records


def to_delimited_text(records: Iterable[ContactRecord]) -> str:
    """Render records as CSV text with ISO timestamps."""
    records = _require_records(records)
    csv_text = records_to_frame(records).to_csv(index=False)
    logger.info(f"Exported {len(records)} records to CSV")
    return csv_text


def _autosize(worksheet, frame: pd.DataFrame) -> None:
    for idx, column in enumerate(frame.columns, start=1):
        longest = max([len(str(column))] + [len(str(v)) for v in frame[column]])
        worksheet.column_dimensions[get_column_letter(idx)].width = min(longest + 2, MAX_COLUMN_WIDTH)


def to_spreadsheet_binary(records: Iterable[ContactRecord]) -> bytes:
    """Render records as an XLSX workbook with a summary sheet."""
    records = _require_records(records)
    contacts = records_to_frame(records, timestamps="local")
    summary = summary_frame(records)

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        contacts.to_excel(writer, sheet_name=CONTACTS_SHEET, index=False)
        summary.to_excel(writer, sheet_name=SUMMARY_SHEET, index=False)

        _autosize(writer.sheets[CONTACTS_SHEET], contacts)
        summary_ws = writer.sheets[SUMMARY_SHEET]
        summary_ws.column_dimensions["A"].width = 25
        summary_ws.column_dimensions["B"].width = 15

    logger.info(f"Exported {len(records)} records to XLSX")
    return buffer.getvalue()


def export_filename(fmt: str, today: Optional[date] = None) -> str:
    if fmt == "csv":
        return "business-contacts.csv"
    if fmt == "xlsx":
        today = today or date.today()
        return f"business-contacts-{today.isoformat()}.xlsx"
    raise ValueError(f"Unsupported export format: {fmt}")


EXPORTERS: Dict[str, Any] = {
    "csv": (to_delimited_text, CSV_MIMETYPE),
    "xlsx": (to_spreadsheet_binary, XLSX_MIMETYPE),
}
