"""Persistence and export helpers for submitted VAT returns."""

from __future__ import annotations

import csv
import json
import os
import sqlite3
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from io import StringIO
from threading import Lock
from typing import Any, Callable, Mapping
from uuid import uuid4

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from .calculators import BOX_FIELDS

BOX_LABELS: dict[str, str] = {
    "vatDueSales": "VAT due on sales",
    "vatDueAcquisitions": "VAT due on acquisitions from other EC Member States",
    "totalVatDue": "Total VAT due",
    "vatReclaimedCurrPeriod": "VAT reclaimed on purchases",
    "netVatDue": "Net VAT to pay or reclaim",
    "totalValueSalesExVAT": "Total value of sales excluding VAT",
    "totalValuePurchasesExVAT": "Total value of purchases excluding VAT",
    "totalValueGoodsSuppliedExVAT": "Total value of supplies to other EC Member States",
    "totalAcquisitionsExVAT": "Total value of acquisitions from other EC Member States",
}


@dataclass(frozen=True)
class SubmissionRecord:
    """A VAT return as it was filed, together with HMRC's receipt."""

    id: str
    period_key: str
    vrn: str
    boxes: Mapping[str, float]
    receipt: Mapping[str, Any]
    submitted_at: datetime
    demo: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "period_key": self.period_key,
            "vrn": self.vrn,
            "boxes": dict(self.boxes),
            "receipt": dict(self.receipt),
            "submitted_at": self.submitted_at.isoformat(),
            "demo": self.demo,
        }


class InMemorySubmissionRepository:
    """Thread-safe in-memory storage for filed returns, oldest evicted first."""

    def __init__(
        self,
        *,
        max_items: int | None = 500,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if max_items is not None and max_items <= 0:
            raise ValueError("max_items must be positive when provided")

        self._max_items = max_items
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._records: "OrderedDict[str, SubmissionRecord]" = OrderedDict()
        self._lock = Lock()

    def save(
        self,
        *,
        period_key: str,
        vrn: str,
        boxes: Mapping[str, float],
        receipt: Mapping[str, Any],
        demo: bool = False,
    ) -> SubmissionRecord:
        record = SubmissionRecord(
            id=uuid4().hex,
            period_key=period_key,
            vrn=vrn,
            boxes=dict(boxes),
            receipt=dict(receipt),
            submitted_at=self._clock(),
            demo=demo,
        )
        with self._lock:
            self._records[record.id] = record
            if self._max_items is not None:
                while len(self._records) > self._max_items:
                    self._records.popitem(last=False)
        return record

    def get(self, submission_id: str) -> SubmissionRecord:
        with self._lock:
            record = self._records.get(submission_id)
        if record is None:
            raise KeyError(submission_id)
        return record

    def list(self, *, vrn: str | None = None) -> list[SubmissionRecord]:
        """Return stored submissions, most recent first."""

        with self._lock:
            records = list(self._records.values())
        if vrn is not None:
            records = [record for record in records if record.vrn == vrn]
        return list(reversed(records))


class SQLiteSubmissionRepository:
    """SQLite-backed repository so filed returns survive restarts."""

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._path = str(path)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = Lock()
        self._initialise()

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._path, check_same_thread=False)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA journal_mode=WAL")
        connection.execute("PRAGMA synchronous=NORMAL")
        return connection

    def _initialise(self) -> None:
        with self._connect() as connection:
            connection.execute(
                """
                CREATE TABLE IF NOT EXISTS vat_submissions (
                    id TEXT PRIMARY KEY,
                    period_key TEXT NOT NULL,
                    vrn TEXT NOT NULL,
                    boxes TEXT NOT NULL,
                    receipt TEXT NOT NULL,
                    submitted_at TEXT NOT NULL,
                    demo INTEGER NOT NULL DEFAULT 0
                )
                """
            )

    @staticmethod
    def _decode_record(row: sqlite3.Row) -> SubmissionRecord:
        submitted_at = datetime.fromisoformat(row["submitted_at"])
        if submitted_at.tzinfo is None:
            submitted_at = submitted_at.replace(tzinfo=timezone.utc)
        return SubmissionRecord(
            id=row["id"],
            period_key=row["period_key"],
            vrn=row["vrn"],
            boxes=json.loads(row["boxes"]),
            receipt=json.loads(row["receipt"]),
            submitted_at=submitted_at,
            demo=bool(row["demo"]),
        )

    def save(
        self,
        *,
        period_key: str,
        vrn: str,
        boxes: Mapping[str, float],
        receipt: Mapping[str, Any],
        demo: bool = False,
    ) -> SubmissionRecord:
        record = SubmissionRecord(
            id=uuid4().hex,
            period_key=period_key,
            vrn=vrn,
            boxes=dict(boxes),
            receipt=dict(receipt),
            submitted_at=self._clock(),
            demo=demo,
        )
        with self._lock:
            with self._connect() as connection:
                connection.execute(
                    "INSERT INTO vat_submissions"
                    " (id, period_key, vrn, boxes, receipt, submitted_at, demo)"
                    " VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        record.id,
                        record.period_key,
                        record.vrn,
                        json.dumps(record.boxes),
                        json.dumps(record.receipt),
                        record.submitted_at.isoformat(),
                        int(record.demo),
                    ),
                )
        return record

    def get(self, submission_id: str) -> SubmissionRecord:
        with self._lock:
            with self._connect() as connection:
                row = connection.execute(
                    "SELECT * FROM vat_submissions WHERE id = ?",
                    (submission_id,),
                ).fetchone()
        if row is None:
            raise KeyError(submission_id)
        return self._decode_record(row)

    def list(self, *, vrn: str | None = None) -> list[SubmissionRecord]:
        query = "SELECT * FROM vat_submissions"
        params: tuple[Any, ...] = ()
        if vrn is not None:
            query += " WHERE vrn = ?"
            params = (vrn,)
        query += " ORDER BY submitted_at DESC"
        with self._lock:
            with self._connect() as connection:
                rows = connection.execute(query, params).fetchall()
        return [self._decode_record(row) for row in rows]


def _format_currency(value: Any) -> str:
    number = float(value or 0)
    sign = "-" if number < 0 else ""
    return f"{sign}£{abs(number):,.2f}"


def _box_rows(record: SubmissionRecord) -> list[tuple[int, str, str, str]]:
    rows: list[tuple[int, str, str, str]] = []
    for number, field in enumerate(BOX_FIELDS, start=1):
        rows.append(
            (number, field, BOX_LABELS[field], _format_currency(record.boxes.get(field, 0)))
        )
    return rows


def _receipt_rows(record: SubmissionRecord) -> list[tuple[str, str]]:
    labels = {
        "processingDate": "Processing date",
        "formBundleNumber": "Form bundle number",
        "paymentIndicator": "Payment indicator",
        "chargeRefNumber": "Charge reference",
    }
    return [
        (label, str(record.receipt[key]))
        for key, label in labels.items()
        if record.receipt.get(key)
    ]


def render_csv(record: SubmissionRecord) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["Box", "Field", "Description", "Amount"])
    for row in _box_rows(record):
        writer.writerow(row)

    writer.writerow([])
    writer.writerow(["Period key", record.period_key])
    writer.writerow(["VRN", record.vrn])
    writer.writerow(["Submitted at", record.submitted_at.isoformat()])
    for label, value in _receipt_rows(record):
        writer.writerow([label, value])

    return buffer.getvalue()


def render_pdf(record: SubmissionRecord) -> bytes:
    pdf = FPDF()
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()
    pdf.set_title(f"VAT return {record.period_key}")
    pdf.set_text_color(33, 37, 41)

    pdf.set_font("Helvetica", style="B", size=16)
    pdf.cell(
        0, 10, f"VAT return {record.period_key}", new_x=XPos.LMARGIN, new_y=YPos.NEXT
    )

    pdf.set_font("Helvetica", size=11)
    pdf.cell(0, 7, f"VRN: {record.vrn}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.cell(
        0,
        7,
        f"Submitted: {record.submitted_at.strftime('%d %B %Y %H:%M')}",
        new_x=XPos.LMARGIN,
        new_y=YPos.NEXT,
    )
    if record.demo:
        pdf.cell(
            0, 7, "Demo submission (not sent to HMRC)", new_x=XPos.LMARGIN, new_y=YPos.NEXT
        )

    pdf.ln(4)
    pdf.set_font("Helvetica", style="B", size=12)
    pdf.cell(0, 8, "Boxes", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_font("Helvetica", size=11)
    for number, _, label, value in _box_rows(record):
        pdf.multi_cell(pdf.epw, 6, f"Box {number}. {label}: {value}")

    receipt_rows = _receipt_rows(record)
    if receipt_rows:
        pdf.ln(4)
        pdf.set_font("Helvetica", style="B", size=12)
        pdf.cell(0, 8, "HMRC receipt", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font("Helvetica", size=11)
        for label, value in receipt_rows:
            pdf.multi_cell(pdf.epw, 6, f"{label}: {value}")

    output = pdf.output()
    if isinstance(output, (bytes, bytearray)):
        return bytes(output)
    return output.encode("latin1")


__all__ = [
    "BOX_LABELS",
    "InMemorySubmissionRepository",
    "SQLiteSubmissionRepository",
    "SubmissionRecord",
    "render_csv",
    "render_pdf",
]
