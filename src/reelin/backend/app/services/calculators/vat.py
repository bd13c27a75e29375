"""Assemble the nine-box VAT return from categorised transactions."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from reelin.backend.app.models import Direction, VATRecord
from reelin.backend.config.year_config import VATConfig

from .utils import format_percentage, round_currency

# HMRC field names in box order.
BOX_FIELDS: tuple[str, ...] = (
    "vatDueSales",
    "vatDueAcquisitions",
    "totalVatDue",
    "vatReclaimedCurrPeriod",
    "netVatDue",
    "totalValueSalesExVAT",
    "totalValuePurchasesExVAT",
    "totalValueGoodsSuppliedExVAT",
    "totalAcquisitionsExVAT",
)

_WHOLE_POUND_FIELDS = frozenset(BOX_FIELDS[5:])


@dataclass(frozen=True)
class VATReturn:
    """The nine boxes of a VAT return, rounded to pence."""

    vat_due_sales: float
    vat_due_acquisitions: float
    total_vat_due: float
    vat_reclaimed_curr_period: float
    net_vat_due: float
    total_value_sales_ex_vat: float
    total_value_purchases_ex_vat: float
    total_value_goods_supplied_ex_vat: float
    total_acquisitions_ex_vat: float

    def boxes(self) -> dict[str, float]:
        values = (
            self.vat_due_sales,
            self.vat_due_acquisitions,
            self.total_vat_due,
            self.vat_reclaimed_curr_period,
            self.net_vat_due,
            self.total_value_sales_ex_vat,
            self.total_value_purchases_ex_vat,
            self.total_value_goods_supplied_ex_vat,
            self.total_acquisitions_ex_vat,
        )
        return dict(zip(BOX_FIELDS, values))

    def as_hmrc_payload(self, period_key: str) -> dict[str, Any]:
        """Return the body expected by the HMRC VAT returns endpoint.

        HMRC wants box 5 as an absolute value (a refund is implied by box 4
        exceeding box 3) and boxes 6 to 9 in whole pounds.
        """

        payload: dict[str, Any] = {"periodKey": period_key}
        for name, value in self.boxes().items():
            if name == "netVatDue":
                value = abs(value)
            elif name in _WHOLE_POUND_FIELDS:
                value = float(math.trunc(value))
            payload[name] = value
        payload["finalised"] = True
        return payload

    @classmethod
    def from_boxes(cls, boxes: Mapping[str, float]) -> VATReturn:
        missing = [name for name in BOX_FIELDS if name not in boxes]
        if missing:
            raise ValueError(f"VAT return is missing boxes: {', '.join(missing)}")
        vat_return = cls(*(round_currency(float(boxes[name])) for name in BOX_FIELDS))

        expected_total = round_currency(
            vat_return.vat_due_sales + vat_return.vat_due_acquisitions
        )
        if vat_return.total_vat_due != expected_total:
            raise ValueError(
                "totalVatDue must equal vatDueSales plus vatDueAcquisitions "
                f"({expected_total:.2f})"
            )
        expected_net = round_currency(
            vat_return.total_vat_due - vat_return.vat_reclaimed_curr_period
        )
        if vat_return.net_vat_due not in {expected_net, abs(expected_net)}:
            raise ValueError(
                "netVatDue must equal totalVatDue minus vatReclaimedCurrPeriod "
                f"({expected_net:.2f})"
            )
        return replace(vat_return, net_vat_due=expected_net)


def vat_portion(amount: float, rate: float, *, amount_includes_vat: bool) -> tuple[float, float]:
    """Return ``(net, vat)`` for ``amount`` charged at ``rate`` percent."""

    if amount_includes_vat:
        vat = amount * rate / (100 + rate)
        return amount - vat, vat
    return amount, amount * rate / 100


def assemble_vat_return(
    records: Iterable[VATRecord],
    config: VATConfig,
    *,
    amounts_include_vat: bool = False,
) -> tuple[VATReturn, list[dict[str, Any]]]:
    """Group ``records`` by direction and rate and combine them into boxes.

    Returns the return itself and a breakdown row per (direction, rate) pair.
    """

    groups: dict[tuple[Direction, float], dict[str, float]] = {}

    for index, record in enumerate(records):
        if not config.is_allowed(record.vat_rate):
            allowed = ", ".join(format_percentage(rate) for rate in config.allowed_rates)
            raise ValueError(
                f"Record {index} has unsupported VAT rate "
                f"{format_percentage(record.vat_rate)} (allowed: {allowed})"
            )
        net, vat = vat_portion(
            record.amount, record.vat_rate, amount_includes_vat=amounts_include_vat
        )
        bucket = groups.setdefault(
            (record.direction, float(record.vat_rate)),
            {"count": 0, "gross": 0.0, "net": 0.0, "vat": 0.0},
        )
        bucket["count"] += 1
        bucket["gross"] += net + vat
        bucket["net"] += net
        bucket["vat"] += vat

    def _total(direction: Direction, key: str) -> float:
        return sum(
            values[key] for (group_direction, _), values in groups.items()
            if group_direction is direction
        )

    # Boxes 3 and 5 are derived from the rounded boxes so the return balances.
    vat_due_sales = round_currency(_total(Direction.INCOME, "vat"))
    vat_reclaimed = round_currency(_total(Direction.EXPENSE, "vat"))
    vat_due_acquisitions = 0.0
    total_vat_due = round_currency(vat_due_sales + vat_due_acquisitions)

    vat_return = VATReturn(
        vat_due_sales=vat_due_sales,
        vat_due_acquisitions=vat_due_acquisitions,
        total_vat_due=total_vat_due,
        vat_reclaimed_curr_period=vat_reclaimed,
        net_vat_due=round_currency(total_vat_due - vat_reclaimed),
        total_value_sales_ex_vat=round_currency(_total(Direction.INCOME, "net")),
        total_value_purchases_ex_vat=round_currency(_total(Direction.EXPENSE, "net")),
        total_value_goods_supplied_ex_vat=0.0,
        total_acquisitions_ex_vat=0.0,
    )

    breakdown = [
        {
            "direction": direction.value,
            "vat_rate": rate,
            "rate_label": format_percentage(rate),
            "record_count": int(values["count"]),
            "gross_amount": round_currency(values["gross"]),
            "net_amount": round_currency(values["net"]),
            "vat_amount": round_currency(values["vat"]),
        }
        for (direction, rate), values in sorted(
            groups.items(), key=lambda item: (item[0][0].value, item[0][1])
        )
    ]

    return vat_return, breakdown


def assess_mtd_readiness(
    *,
    has_business_name: bool,
    has_vat_number: bool,
    has_hmrc_connection: bool,
    income_count: int,
    expense_count: int,
) -> dict[str, Any]:
    """Score how ready a trader is to file digitally and list outstanding tasks."""

    tasks: list[str] = []
    if not has_business_name:
        tasks.append("Add your business name in Settings")
    if not has_vat_number:
        tasks.append("Add your VAT number in Settings")
    if not has_hmrc_connection:
        tasks.append("Connect to HMRC in Settings")
    if income_count == 0:
        tasks.append("Add at least one income transaction")

    score = 0
    score += 25 if has_business_name else 0
    score += 25 if has_vat_number else 0
    score += 30 if has_hmrc_connection else 0
    score += 10 if income_count > 0 else 0
    score += 10 if expense_count > 0 else 0

    return {
        "tasks": tasks,
        "has_errors": not (has_business_name and has_vat_number and has_hmrc_connection),
        "score": score,
    }


__all__ = [
    "BOX_FIELDS",
    "VATReturn",
    "assemble_vat_return",
    "assess_mtd_readiness",
    "vat_portion",
]
