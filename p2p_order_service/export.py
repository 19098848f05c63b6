"""
export.py — CSV Export of Order Details for Bulk Payouts

Turns order detail records into the CSV file uploaded to the bank for bulk payouts.
Each row is built from the first payment term of an order; the bank name entered by
the counterparty is matched against a table of bank codes.

Columns: Account_Number, Amount, Bank_Codes, Narration
"""

import csv
import io
import re
from datetime import date
from typing import Iterable, Optional

from .models import OrderDetail

CSV_FIELDS = ["Account_Number", "Amount", "Bank_Codes", "Narration"]

# NIBSS/CBN institution codes
BANK_CODES = {
    "access": "044",
    "access diamond": "063",
    "citibank": "023",
    "ecobank": "050",
    "fidelity": "070",
    "first": "011",
    "first city monument": "214",
    "fcmb": "214",
    "globus": "00103",
    "guaranty trust": "058",
    "gtbank": "058",
    "gtb": "058",
    "heritage": "030",
    "jaiz": "301",
    "keystone": "082",
    "kuda": "50211",
    "moniepoint": "50515",
    "opay": "999992",
    "palmpay": "999991",
    "polaris": "076",
    "providus": "101",
    "stanbic ibtc": "221",
    "standard chartered": "068",
    "sterling": "232",
    "suntrust": "100",
    "taj": "302",
    "titan trust": "102",
    "union": "032",
    "united for africa": "033",
    "uba": "033",
    "unity": "215",
    "wema": "035",
    "zenith": "057",
}

_NOISE_WORDS = {"bank", "plc", "limited", "ltd", "nigeria", "microfinance", "mfb"}


def _normalize_bank_name(name: str) -> str:
    words = re.sub(r"[^a-z0-9 ]", " ", name.lower()).split()
    return " ".join(word for word in words if word not in _NOISE_WORDS)


def match_bank_code(bank_name: Optional[str]) -> Optional[str]:
    """
    Returns the bank code for a free-text bank name, or None if no bank matches.

    Matching ignores case, punctuation and filler words like "Bank" or "PLC". An
    exact match wins; otherwise the longest known name contained in the input is used.
    """
    if not bank_name:
        return None
    normalized = _normalize_bank_name(bank_name)
    if not normalized:
        return None
    if normalized in BANK_CODES:
        return BANK_CODES[normalized]

    padded = f" {normalized} "
    candidates = [key for key in BANK_CODES if f" {key} " in padded]
    if not candidates:
        return None
    return BANK_CODES[max(candidates, key=len)]


# Fest auf Englisch, unabhängig von der Locale des Hosts
MONTH_NAMES = ["January", "February", "March", "April", "May", "June", "July", "August", "September",
               "October", "November", "December"]


def narration_for(day: date) -> str:
    return f"Payment for goods on {MONTH_NAMES[day.month - 1]} {day.day}, {day.year}"


def _format_amount(amount: float) -> str:
    if not amount:
        return ""
    return str(int(amount)) if float(amount).is_integer() else str(amount)


def build_csv_rows(details: Iterable[OrderDetail], today: Optional[date] = None) -> list:
    """
    Builds one CSV row (as dict) per order.

    Missing payment data results in empty cells, never in a skipped row.
    """
    narration = narration_for(today or date.today())
    rows = []
    for detail in details:
        term = detail.primary_payment_term
        rows.append({
            "Account_Number": (term.accountNo if term else None) or "",
            "Amount": _format_amount(detail.amount),
            "Bank_Codes": match_bank_code(term.bankName if term else None) or "",
            "Narration": narration,
        })
    return rows


def render_csv(details: Iterable[OrderDetail], today: Optional[date] = None) -> str:
    """Renders the payout CSV (with header line) for the given orders."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(build_csv_rows(details, today))
    return buffer.getvalue()
