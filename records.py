"""
Record types for the hospital records manager.

Records are plain data holders: every behaviour (id assignment, lookup,
persistence) lives in the store and its helpers.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

# User-facing formats for date-only and date-time fields
DATE_FORMAT = '%Y-%m-%d'
DATETIME_FORMAT = '%Y-%m-%d %H:%M'

# Range of a stored SQLite INTEGER
MAX_INTEGER = 2 ** 63 - 1
MIN_INTEGER = -2 ** 63

PATIENTS = 'patients'
DOCTORS = 'doctors'
APPOINTMENTS = 'appointments'
INVENTORY = 'inventory'

KINDS = (PATIENTS, DOCTORS, APPOINTMENTS, INVENTORY)


@dataclass
class Patient:
    id: int
    name: str
    gender: str = ''
    phone: str = ''
    address: str = ''
    dob: Optional[date] = None


@dataclass
class Doctor:
    id: int
    name: str
    specialization: str = ''
    phone: str = ''


@dataclass
class Appointment:
    id: int
    patient_id: int
    doctor_id: int
    date_time: datetime
    notes: str = ''


@dataclass
class InventoryItem:
    id: int
    name: str
    quantity: int = 0
    unit_price: float = 0.0


RECORD_TYPES = {
    PATIENTS: Patient,
    DOCTORS: Doctor,
    APPOINTMENTS: Appointment,
    INVENTORY: InventoryItem,
}
