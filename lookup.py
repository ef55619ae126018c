"""Resolve appointment references to display names."""

from typing import Dict, List

from records import APPOINTMENTS, DATETIME_FORMAT, DOCTORS, PATIENTS

DELETED_LABEL = '-deleted-'


def resolve_name(records, ref_id, placeholder=DELETED_LABEL):
    """Name of the first record with id == ref_id, else the placeholder."""
    return next((r.name for r in records if r.id == ref_id), placeholder)


def appointment_rows(store) -> List[Dict]:
    """Appointments as table rows, with patient and doctor names filled in"""
    patients = store.all(PATIENTS)
    doctors = store.all(DOCTORS)
    out = []
    for a in store.all(APPOINTMENTS):
        out.append({
            'id': a.id,
            'patient_id': a.patient_id,
            'doctor_id': a.doctor_id,
            'patient': resolve_name(patients, a.patient_id),
            'doctor': resolve_name(doctors, a.doctor_id),
            'date_time': a.date_time.strftime(DATETIME_FORMAT) if a.date_time else '',
            'notes': a.notes,
        })
    return out
