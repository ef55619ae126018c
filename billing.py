"""
Ad-hoc bill generation.

Bills are computed from two charges and rendered as text; they are never
kept by the record store. The text can be written to any file the user picks.
"""

import os
from dataclasses import dataclass
from typing import Optional

TAX_RATE = 0.18


@dataclass
class Bill:
    service: float
    medicine: float
    tax: float
    total: float
    patient_name: Optional[str] = None


def parse_charge(text) -> float:
    """Charge entered by the user; empty or non-numeric input counts as 0.0"""
    try:
        return float(str(text).strip())
    except (TypeError, ValueError):
        return 0.0


def compute_bill(service: float, medicine: float, patient_name: Optional[str] = None) -> Bill:
    subtotal = service + medicine
    tax = subtotal * TAX_RATE
    return Bill(service=service, medicine=medicine, tax=tax, total=subtotal + tax,
                patient_name=patient_name)


def format_bill(bill: Bill) -> str:
    lines = [
        "--- Hospital Bill ---",
        f"Patient: {bill.patient_name or '-'}",
        f"Service: {bill.service}",
        f"Medicine: {bill.medicine}",
        f"Tax ({TAX_RATE:.0%}): {bill.tax:.2f}",
        f"TOTAL: {bill.total:.2f}",
    ]
    return "\n".join(lines) + "\n"


def write_bill(path, text: str) -> str:
    """Write bill text to `path` and return the absolute path written.

    OSError propagates so the caller can show it to the user.
    """
    path = os.path.abspath(os.path.expanduser(str(path)))
    with open(path, 'w', encoding='utf-8') as f:
        f.write(text)
    return path
