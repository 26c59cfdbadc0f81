import csv
import io
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional

from openpyxl import Workbook

from schemas import RegistrationRecord
from time_utils import format_display_date

EXPORT_FILENAME_PREFIX = "karate_registrations"
CSV_MEDIA_TYPE = "text/csv"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

EXPORT_HEADERS = [
    "Registration Number",
    "Name",
    "Age",
    "Gender",
    "Mobile",
    "Address",
    "Status",
    "Phone Verified",
    "Registration Date",
]


def _enum_text(value) -> str:
    if hasattr(value, "value"):
        return str(value.value)
    return str(value or "")


def export_row(record: RegistrationRecord) -> List[str]:
    return [
        record.registration_number,
        record.name,
        record.age,
        _enum_text(record.gender),
        record.mobile,
        record.address,
        _enum_text(record.status),
        "Yes" if record.phone_verified else "No",
        format_display_date(record.created_at),
    ]


def export_to_csv(records: Iterable[RegistrationRecord]) -> bytes:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    writer.writerows(export_row(record) for record in records)
    return output.getvalue().rstrip("\n").encode("utf-8")


def export_to_xlsx(records: Iterable[RegistrationRecord]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Registrations"
    ws.append(EXPORT_HEADERS)
    for record in records:
        ws.append(export_row(record))
    out = io.BytesIO()
    wb.save(out)
    out.seek(0)
    return out.read()


def export_filename(extension: str = "csv", today: Optional[date] = None) -> str:
    day = today or datetime.now(timezone.utc).date()
    return f"{EXPORT_FILENAME_PREFIX}_{day.isoformat()}.{extension}"
