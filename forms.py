"""
Form-to-record mapping.

Every create/edit submits the whole form. Each *_fields function turns the
raw values into record fields or raises ValidationError, so a bad form never
reaches the store and no record is left half-updated.
"""

import math
from datetime import datetime

from records import DATE_FORMAT, DATETIME_FORMAT, DOCTORS, MAX_INTEGER, MIN_INTEGER, PATIENTS


class ValidationError(ValueError):
    """User-visible problem with submitted form data."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


def _text(form, key):
    value = form.get(key)
    return '' if value is None else str(value).strip()


def _required_name(form):
    name = _text(form, 'name')
    if not name:
        raise ValidationError("Name required.")
    return name


def parse_date(text):
    """YYYY-MM-DD, or None when left blank."""
    if not text:
        return None
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f"Invalid date '{text}', expected YYYY-MM-DD.")


def parse_datetime(text):
    try:
        return datetime.strptime(text, DATETIME_FORMAT)
    except ValueError:
        raise ValidationError(f"Invalid date/time '{text}', expected YYYY-MM-DD HH:MM.")


def parse_int(text, label):
    try:
        value = int(text)
    except ValueError:
        raise ValidationError(f"Invalid {label} '{text}'.")
    if not MIN_INTEGER <= value <= MAX_INTEGER:
        raise ValidationError(f"Invalid {label} '{text}', number too large.")
    return value


def patient_fields(form):
    dob = parse_date(_text(form, 'dob'))
    return {
        'name': _required_name(form),
        'gender': _text(form, 'gender'),
        'phone': _text(form, 'phone'),
        'address': _text(form, 'address'),
        'dob': dob,
    }


def doctor_fields(form):
    return {
        'name': _required_name(form),
        'specialization': _text(form, 'specialization'),
        'phone': _text(form, 'phone'),
    }


def appointment_fields(form, store):
    """Appointment fields; the referenced ids are not checked against the store."""
    if not store.all(PATIENTS) or not store.all(DOCTORS):
        raise ValidationError("Add patients and doctors first.")
    return {
        'patient_id': parse_int(_text(form, 'patient_id'), 'patient id'),
        'doctor_id': parse_int(_text(form, 'doctor_id'), 'doctor id'),
        'date_time': parse_datetime(_text(form, 'date_time')),
        'notes': _text(form, 'notes'),
    }


def inventory_fields(form):
    quantity = parse_int(_text(form, 'quantity'), 'quantity')
    price_text = _text(form, 'unit_price')
    try:
        unit_price = float(price_text)
    except ValueError:
        raise ValidationError(f"Invalid unit price '{price_text}'.")
    if not math.isfinite(unit_price):
        raise ValidationError(f"Invalid unit price '{price_text}'.")
    return {
        'name': _required_name(form),
        'quantity': quantity,
        'unit_price': unit_price,
    }


def parse_restock_delta(text):
    """Extra quantity for a restock; any integer, negative included."""
    try:
        delta = int(str(text).strip())
    except (TypeError, ValueError):
        raise ValidationError("Invalid number.")
    if not MIN_INTEGER <= delta <= MAX_INTEGER:
        raise ValidationError("Invalid number.")
    return delta
