import atexit
import logging
import os
import pathlib
from dataclasses import asdict
from datetime import date, datetime

from flask import Flask, jsonify, request

from billing import compute_bill, format_bill, parse_charge, write_bill
from forms import (ValidationError, appointment_fields, doctor_fields, inventory_fields,
                   parse_int, parse_restock_delta, patient_fields)
from lookup import appointment_rows, resolve_name
from models import db
from records import (APPOINTMENTS, DATE_FORMAT, DATETIME_FORMAT, DOCTORS, INVENTORY, KINDS,
                     PATIENTS)
from store import RecordStore

logger = logging.getLogger(__name__)


# ---------------- HELPER FUNCTIONS ----------------
def _serialize(record):
    out = asdict(record)
    for key, value in out.items():
        if isinstance(value, datetime):
            out[key] = value.strftime(DATETIME_FORMAT)
        elif isinstance(value, date):
            out[key] = value.strftime(DATE_FORMAT)
    return out


def _json_body():
    """JSON request body; anything but an object counts as an empty form."""
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


def _form_fields(kind, form, store):
    if kind == PATIENTS:
        return patient_fields(form)
    if kind == DOCTORS:
        return doctor_fields(form)
    if kind == APPOINTMENTS:
        return appointment_fields(form, store)
    return inventory_fields(form)


def _bill_for(data, store):
    patients = store.all(PATIENTS)
    if not patients:
        raise ValidationError("No patients available.")
    patient_id = parse_int(str(data.get('patient_id', '')).strip(), 'patient id')
    return compute_bill(
        parse_charge(data.get('service', '0')),
        parse_charge(data.get('medicine', '0')),
        patient_name=resolve_name(patients, patient_id, placeholder=None),
    )


def create_app(test_config=None):
    app = Flask(__name__)
    # Snapshot files live alongside this app.py unless HMS_DATA_DIR says otherwise
    base_dir = pathlib.Path(__file__).parent.resolve()
    app.config['HMS_DATA_DIR'] = os.environ.get('HMS_DATA_DIR', str(base_dir))
    app.config['LOG_LEVEL'] = os.environ.get('HMS_LOG_LEVEL', 'INFO')
    if test_config:
        app.config.update(test_config)

    level = str(app.config['LOG_LEVEL']).upper()
    for log in (logger, logging.getLogger('store'), app.logger):
        log.setLevel(level)

    data_dir = pathlib.Path(app.config['HMS_DATA_DIR']).resolve()
    app.config['SQLALCHEMY_BINDS'] = {
        kind: f'sqlite:///{data_dir / (kind + ".db")}' for kind in KINDS
    }
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    logger.info("[DB] Using snapshot directory: %s", data_dir)

    db.init_app(app)
    store = RecordStore(app)
    store.load()
    # save on interpreter exit, however the app was launched
    if app.config.get('SAVE_ON_EXIT', not app.config.get('TESTING', False)):
        atexit.register(store.save)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({'error': e.message}), 400

    # ---------------- RECORD PANELS ----------------
    @app.route('/api/<kind>')
    def api_list(kind):
        if kind not in KINDS:
            return jsonify({'error': 'not found'}), 404
        if kind == APPOINTMENTS:
            return jsonify(appointment_rows(store))
        return jsonify([_serialize(r) for r in store.all(kind)])

    @app.route('/api/<kind>', methods=['POST'])
    def api_create(kind):
        if kind not in KINDS:
            return jsonify({'error': 'not found'}), 404
        data = _json_body()
        record = store.create(kind, **_form_fields(kind, data, store))
        return jsonify({'ok': True, 'id': record.id}), 201

    @app.route('/api/<kind>/<int:record_id>', methods=['PUT'])
    def api_update(kind, record_id):
        if kind not in KINDS or store.get(kind, record_id) is None:
            return jsonify({'error': 'not found'}), 404
        data = _json_body()
        if not store.update(kind, record_id, **_form_fields(kind, data, store)):
            return jsonify({'error': 'not found'}), 404
        return jsonify({'ok': True})

    @app.route('/api/<kind>/<int:record_id>', methods=['DELETE'])
    def api_delete(kind, record_id):
        if kind not in KINDS or not store.remove(kind, record_id):
            return jsonify({'error': 'not found'}), 404
        return jsonify({'ok': True})

    @app.route('/api/inventory/<int:item_id>/restock', methods=['POST'])
    def api_restock(item_id):
        if store.get(INVENTORY, item_id) is None:
            return jsonify({'error': 'not found'}), 404
        data = _json_body()
        delta = parse_restock_delta(data.get('quantity'))
        try:
            item = store.restock(item_id, delta)
        except OverflowError:
            raise ValidationError("Invalid number.")
        return jsonify({'ok': True, 'quantity': item.quantity})

    # ---------------- BILLING ----------------
    @app.route('/api/billing', methods=['POST'])
    def api_billing():
        data = _json_body()
        bill = _bill_for(data, store)
        return jsonify({
            'bill': format_bill(bill),
            'tax': round(bill.tax, 2),
            'total': round(bill.total, 2),
        })

    @app.route('/api/billing/export', methods=['POST'])
    def api_billing_export():
        data = _json_body()
        path = str(data.get('path') or '').strip()
        if not path:
            raise ValidationError("Choose a file to save the bill to.")
        text = data.get('bill')
        if not isinstance(text, str) or not text:
            text = format_bill(_bill_for(data, store))
        try:
            written = write_bill(path, text)
        except OSError as e:
            logger.error("Could not write bill to %s: %s", path, e)
            return jsonify({'error': f'Error saving file: {e}'}), 500
        return jsonify({'ok': True, 'message': f'Saved to {written}'})

    # ---------------- PERSISTENCE ----------------
    @app.route('/api/save', methods=['POST'])
    def api_save():
        result = store.save()
        if not result.ok:
            return jsonify({'ok': False, 'failures': result.failures}), 500
        return jsonify({'ok': True, 'message': 'Data saved.'})

    return app


# ---------------- MAIN ----------------
if __name__ == '__main__':
    logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app = create_app()
    # no reloader: a second process would save its own stale copy on exit
    app.run(host='127.0.0.1', port=5000, use_reloader=False)
