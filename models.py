from dataclasses import asdict, fields

from flask_sqlalchemy import SQLAlchemy

from records import APPOINTMENTS, DOCTORS, INVENTORY, PATIENTS, RECORD_TYPES

db = SQLAlchemy()

# Each collection lives in its own SQLite file, selected through __bind_key__.
# The rows are a snapshot of the in-memory collection, rewritten on every save.


class PatientRow(db.Model):
    __bind_key__ = PATIENTS
    __tablename__ = 'patient'
    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    name = db.Column(db.String(100), nullable=False)
    gender = db.Column(db.String(20))
    phone = db.Column(db.String(30))
    address = db.Column(db.String(200))
    dob = db.Column(db.Date)


class DoctorRow(db.Model):
    __bind_key__ = DOCTORS
    __tablename__ = 'doctor'
    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    name = db.Column(db.String(100), nullable=False)
    specialization = db.Column(db.String(100))
    phone = db.Column(db.String(30))


class AppointmentRow(db.Model):
    __bind_key__ = APPOINTMENTS
    __tablename__ = 'appointment'
    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    # plain integers: patients and doctors live in other files and may be gone
    patient_id = db.Column(db.Integer, nullable=False)
    doctor_id = db.Column(db.Integer, nullable=False)
    date_time = db.Column(db.DateTime, nullable=False)
    notes = db.Column(db.Text)


class InventoryRow(db.Model):
    __bind_key__ = INVENTORY
    __tablename__ = 'inventory_item'
    id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    name = db.Column(db.String(100), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    unit_price = db.Column(db.Float, nullable=False, default=0.0)


ROW_MODELS = {
    PATIENTS: PatientRow,
    DOCTORS: DoctorRow,
    APPOINTMENTS: AppointmentRow,
    INVENTORY: InventoryRow,
}


def to_row(record):
    """Column values for one record."""
    return asdict(record)


def from_row(kind, row):
    """Build the record for `kind` from a result row mapping."""
    record_type = RECORD_TYPES[kind]
    return record_type(**{f.name: row[f.name] for f in fields(record_type)})
