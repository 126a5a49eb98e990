"""
Resource store tests: raw queries, scoped transactions and CRUD helpers.
"""

import pytest

from fuelops.errors import NotFound, ValidationError
from fuelops.extensions import db
from fuelops.models import Client, Station
from fuelops.services import resource_store


def test_execute_returns_rows_as_dicts(station):
    rows = resource_store.execute("SELECT id, name FROM stations WHERE id = :id", {"id": station.id})
    assert rows == [{"id": station.id, "name": "Station A"}]
    assert resource_store.execute("UPDATE stations SET phone = :p WHERE id = :id", {"p": "555", "id": station.id}) == []


def test_transaction_commits_or_rolls_back(db_session):
    with resource_store.transaction() as session:
        session.add(Client(name="Committed"))

    with pytest.raises(RuntimeError):
        with resource_store.transaction() as session:
            session.add(Client(name="Rolled back"))
            session.flush()
            raise RuntimeError("boom")

    assert [c.name for c in db.session.query(Client).all()] == ["Committed"]


def test_exists_and_require(station):
    assert resource_store.exists(Station, station.id)
    assert not resource_store.exists(Station, station.id + 1)
    assert not resource_store.exists(Station, None)
    with pytest.raises(NotFound) as exc:
        resource_store.require(Station, 999, "Station")
    assert exc.value.details == {"entity": "Station", "id": 999}


def test_update_and_delete(fuel_client):
    client_id = fuel_client.id
    updated = resource_store.update(Client, client_id, allowed={"phone", "email"}, phone="0700")
    assert updated.phone == "0700"
    with pytest.raises(ValidationError):
        resource_store.update(Client, client_id, allowed={"phone"}, name="Renamed")

    resource_store.delete(Client, client_id)
    assert resource_store.get(Client, client_id) is None


def test_paginate(db_session):
    for i in range(5):
        db.session.add(Client(name=f"Client {i}"))
    db.session.commit()

    page = resource_store.paginate(db.session.query(Client).order_by(Client.name), page=3, limit=2)
    assert page["total"] == 5
    assert page["total_pages"] == 3
    assert [c.name for c in page["items"]] == ["Client 4"]


def test_paginate_empty_table(db_session):
    page = resource_store.paginate(db.session.query(Station).order_by(Station.id), page=1, limit=10)
    assert page["total"] == 0
    assert page["total_pages"] == 0
    assert page["items"] == []
