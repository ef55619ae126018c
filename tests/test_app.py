"""Tests for the JSON panels driving the store."""
import atexit
import logging

from app import create_app
from records import INVENTORY, PATIENTS


def _add_patient(client, name="Asha Verma", **extra):
    return client.post('/api/patients', json={'name': name, **extra})


def _add_doctor(client, name="Dr. Arjun Mehta"):
    return client.post('/api/doctors', json={'name': name, 'specialization': "Cardiology"})


class TestRecordPanels:

    def test_create_and_list_patients(self, client):
        resp = _add_patient(client, dob="1990-04-02", gender="F")
        assert resp.status_code == 201
        assert resp.get_json() == {'ok': True, 'id': 1}

        patients = client.get('/api/patients').get_json()
        assert patients == [{'id': 1, 'name': "Asha Verma", 'gender': "F", 'phone': "",
                             'address': "", 'dob': "1990-04-02"}]

    def test_validation_error_is_reported_and_nothing_is_added(self, client, store):
        resp = client.post('/api/patients', json={'name': "", 'dob': "1990-04-02"})
        assert resp.status_code == 400
        assert resp.get_json() == {'error': "Name required."}
        assert store.all(PATIENTS) == []

    def test_edit_is_all_or_nothing(self, client, store):
        _add_patient(client, phone="555")
        resp = client.put('/api/patients/1', json={'name': "Renamed", 'dob': "not a date"})
        assert resp.status_code == 400
        patient = store.get(PATIENTS, 1)
        assert (patient.name, patient.phone) == ("Asha Verma", "555")

    def test_edit(self, client, store):
        _add_doctor(client)
        resp = client.put('/api/doctors/1', json={'name': "Dr. A. Mehta", 'phone': "555-0200"})
        assert resp.status_code == 200
        assert client.get('/api/doctors').get_json()[0]['phone'] == "555-0200"

    def test_edit_and_delete_unknown_record(self, client):
        assert client.put('/api/patients/5', json={'name': "x"}).status_code == 404
        assert client.delete('/api/patients/5').status_code == 404

    def test_unknown_collection(self, client):
        assert client.get('/api/wards').status_code == 404
        assert client.post('/api/wards', json={}).status_code == 404

    def test_appointments_show_names_and_survive_deletes(self, client):
        _add_patient(client)
        _add_doctor(client)
        resp = client.post('/api/appointments', json={
            'patient_id': 1, 'doctor_id': 1, 'date_time': "2025-03-14 09:30", 'notes': "follow-up"})
        assert resp.status_code == 201

        row = client.get('/api/appointments').get_json()[0]
        assert (row['patient'], row['doctor'], row['date_time']) == (
            "Asha Verma", "Dr. Arjun Mehta", "2025-03-14 09:30")

        assert client.delete('/api/patients/1').status_code == 200
        row = client.get('/api/appointments').get_json()[0]
        assert row['patient'] == "-deleted-"

    def test_appointment_needs_patients_and_doctors(self, client):
        resp = client.post('/api/appointments', json={
            'patient_id': 1, 'doctor_id': 1, 'date_time': "2025-03-14 09:30"})
        assert resp.status_code == 400
        assert resp.get_json()['error'] == "Add patients and doctors first."


class TestRestock:

    def test_restock(self, client, store):
        client.post('/api/inventory', json={'name': "Gloves", 'quantity': "10", 'unit_price': "3.5"})
        resp = client.post('/api/inventory/1/restock', json={'quantity': "5"})
        assert resp.get_json() == {'ok': True, 'quantity': 15}

    def test_restock_rejects_non_number(self, client, store):
        client.post('/api/inventory', json={'name': "Gloves", 'quantity': "10", 'unit_price': "3.5"})
        resp = client.post('/api/inventory/1/restock', json={'quantity': "abc"})
        assert resp.status_code == 400
        assert resp.get_json() == {'error': "Invalid number."}
        assert store.get(INVENTORY, 1).quantity == 10

    def test_restock_unknown_item(self, client):
        assert client.post('/api/inventory/3/restock', json={'quantity': "1"}).status_code == 404


class TestBilling:

    def test_generate_bill(self, client):
        _add_patient(client)
        data = client.post('/api/billing', json={
            'patient_id': 1, 'service': "100", 'medicine': "50"}).get_json()
        assert data['tax'] == 27.0
        assert data['total'] == 177.0
        assert "Patient: Asha Verma\n" in data['bill']

    def test_bad_charges_count_as_zero(self, client):
        _add_patient(client)
        data = client.post('/api/billing', json={
            'patient_id': 1, 'service': "lots", 'medicine': ""}).get_json()
        assert data['total'] == 0.0

    def test_bill_needs_a_patient(self, client):
        resp = client.post('/api/billing', json={'service': "100"})
        assert resp.status_code == 400
        assert resp.get_json()['error'] == "No patients available."

    def test_export_bill(self, client, tmp_path):
        target = tmp_path / "bill.txt"
        resp = client.post('/api/billing/export', json={'path': str(target), 'bill': "TOTAL: 1.00\n"})
        assert resp.status_code == 200
        assert target.read_text() == "TOTAL: 1.00\n"

    def test_export_failure_is_reported(self, client, tmp_path):
        resp = client.post('/api/billing/export', json={
            'path': str(tmp_path / "missing" / "bill.txt"), 'bill': "x"})
        assert resp.status_code == 500
        assert resp.get_json()['error'].startswith("Error saving file:")


class TestSave:

    def test_save_then_restart(self, client, data_dir):
        _add_patient(client)
        client.post('/api/inventory', json={'name': "Gloves", 'quantity': "10", 'unit_price': "3.5"})
        assert client.post('/api/save').get_json() == {'ok': True, 'message': "Data saved."}

        restarted = create_app({'TESTING': True, 'HMS_DATA_DIR': str(data_dir)}).test_client()
        assert [p['name'] for p in restarted.get('/api/patients').get_json()] == ["Asha Verma"]
        assert restarted.get('/api/inventory').get_json()[0]['unit_price'] == 3.5

    def test_unsaved_changes_are_not_persisted(self, client, data_dir):
        _add_patient(client)
        restarted = create_app({'TESTING': True, 'HMS_DATA_DIR': str(data_dir)}).test_client()
        assert restarted.get('/api/patients').get_json() == []


class TestRequestBodies:

    def test_non_object_body_is_a_validation_error(self, client, store):
        for body in ('[1]', '"x"', 'not json'):
            resp = client.post('/api/patients', data=body, content_type='application/json')
            assert resp.status_code == 400
            assert resp.get_json() == {'error': "Name required."}
        assert store.all(PATIENTS) == []

    def test_unsaveable_inventory_values_are_rejected(self, client):
        for form in ({'name': "Gloves", 'quantity': "10", 'unit_price': "nan"},
                     {'name': "Gloves", 'quantity': "99999999999999999999", 'unit_price': "1"}):
            assert client.post('/api/inventory', json=form).status_code == 400
        assert client.post('/api/save').get_json()['ok'] is True

    def test_restock_overflow_is_rejected(self, client, store):
        client.post('/api/inventory', json={
            'name': "Gloves", 'quantity': str(2 ** 63 - 1), 'unit_price': "1"})
        resp = client.post('/api/inventory/1/restock', json={'quantity': "1"})
        assert resp.status_code == 400
        assert store.get(INVENTORY, 1).quantity == 2 ** 63 - 1
        assert client.post('/api/save').get_json()['ok'] is True


class TestAppConfig:

    def test_exit_hook_saves_collections(self, data_dir, monkeypatch):
        hooks = []
        monkeypatch.setattr(atexit, 'register', hooks.append)
        app = create_app({'TESTING': True, 'SAVE_ON_EXIT': True, 'HMS_DATA_DIR': str(data_dir)})
        _add_patient(app.test_client())

        assert len(hooks) == 1
        hooks[0]()

        restarted = create_app({'TESTING': True, 'HMS_DATA_DIR': str(data_dir)}).test_client()
        assert [p['name'] for p in restarted.get('/api/patients').get_json()] == ["Asha Verma"]

    def test_no_exit_hook_under_testing(self, data_dir, monkeypatch):
        hooks = []
        monkeypatch.setattr(atexit, 'register', hooks.append)
        create_app({'TESTING': True, 'HMS_DATA_DIR': str(data_dir)})
        assert hooks == []

    def test_log_level_from_config(self, data_dir):
        app = create_app({'TESTING': True, 'HMS_DATA_DIR': str(data_dir), 'LOG_LEVEL': 'debug'})
        assert logging.getLogger('store').level == logging.DEBUG
        assert app.logger.level == logging.DEBUG

        create_app({'TESTING': True, 'HMS_DATA_DIR': str(data_dir), 'LOG_LEVEL': 'INFO'})
        assert logging.getLogger('store').level == logging.INFO
