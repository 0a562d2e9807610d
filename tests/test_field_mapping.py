import pytest

from crm_ledger.domain.constants import KIND_APPOINTMENT, KIND_CUSTOMER, KIND_PRODUCT, KIND_PURCHASE
from crm_ledger.domain.mapping import partial_to_storage, to_client, to_storage


CLIENT_CUSTOMER = {
    "id": "c1",
    "name": "Kim Minji",
    "phone": "010-1234-5678",
    "birthDate": "1991-03-04",
    "skinType": "dry",
    "memo": "prefers mornings",
    "point": 1200,
    "createdAt": "2024-01-01T10:00:00Z",
    "updatedAt": "2024-02-01T10:00:00Z",
    "purchasedProducts": ["p1", "p2"],
}


def test_customer_round_trip_reproduces_client_record():
    storage = to_storage(KIND_CUSTOMER, CLIENT_CUSTOMER)
    assert storage["birth_date"] == "1991-03-04"
    assert storage["skin_type"] == "dry"
    assert storage["purchased_products"] == ["p1", "p2"]
    assert "birthDate" not in storage
    assert to_client(KIND_CUSTOMER, storage) == CLIENT_CUSTOMER


def test_mapping_already_mapped_record_is_a_no_op():
    assert to_client(KIND_CUSTOMER, CLIENT_CUSTOMER) == CLIENT_CUSTOMER
    storage = to_storage(KIND_CUSTOMER, CLIENT_CUSTOMER)
    assert to_storage(KIND_CUSTOMER, storage) == storage


def test_unknown_fields_are_dropped():
    row = {"id": "a1", "customer_id": "c1", "product_id": "p1", "datetime": "2024-05-01T09:00", "legacy_flag": True}
    client = to_client(KIND_APPOINTMENT, row)
    assert "legacy_flag" not in client
    assert "legacyFlag" not in client
    assert client["customerId"] == "c1"
    assert client["productId"] == "p1"


def test_absent_fields_get_defaults():
    client = to_client(KIND_CUSTOMER, {"id": "c9", "name": "Lee"})
    assert client["purchasedProducts"] == []
    assert client["birthDate"] == ""
    assert client["point"] == 0
    assert client["createdAt"] is None

    # null columns from the store also fall back to defaults
    client = to_client(KIND_CUSTOMER, {"id": "c9", "purchased_products": None, "memo": None})
    assert client["purchasedProducts"] == []
    assert client["memo"] == ""


def test_product_and_appointment_status_defaults():
    product = to_client(KIND_PRODUCT, {"id": "p1", "name": "Facial"})
    assert product["type"] == "single"
    assert product["status"] == "active"
    appt = to_storage(KIND_APPOINTMENT, {"customerId": "c1", "productId": "p1", "datetime": "2024-05-01T10:00"})
    assert appt["status"] == "scheduled"


def test_default_sequences_are_not_shared():
    a = to_client(KIND_CUSTOMER, {})
    b = to_client(KIND_CUSTOMER, {})
    a["purchasedProducts"].append("p1")
    assert b["purchasedProducts"] == []


def test_storage_payload_omits_unset_server_fields():
    storage = to_storage(KIND_PURCHASE, {"customerId": "c1", "productId": "p1", "quantity": 2})
    assert storage == {
        "customer_id": "c1",
        "product_id": "p1",
        "quantity": 2,
        "purchase_date": "",
        "total_price": 0,
    }


def test_product_count_stays_nullable():
    single = to_client(KIND_PRODUCT, {"id": "p1", "name": "Facial", "price": 50000, "type": "single"})
    assert single["count"] is None
    assert "count" not in to_storage(KIND_PRODUCT, single)


def test_partial_update_maps_only_given_fields():
    assert partial_to_storage(KIND_CUSTOMER, {"skinType": "oily", "point": 0}) == {"skin_type": "oily", "point": 0}


def test_unknown_kind_rejected():
    with pytest.raises(ValueError):
        to_client("invoice", {})
