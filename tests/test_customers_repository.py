from types import SimpleNamespace

import pytest

from courier.data import customers_repository
from courier.data.customers_repository import (
    CsvCustomerLookup,
    SupabaseCustomerLookup,
    get_customer_lookup,
    load_customers,
    record_from_row,
)


CSV_CONTENT = """mobileNumber,name,houseNumber,region,address,latLng,orderList,price
9876543210,Asha Devi,12,Tanakpur,Main Bazaar,"29.0723,80.1035",1x atta,150
9123456780,Ravi,7,Banbasa,Station Road,,2x milk,60
9876543210,Duplicate,1,Nowhere,,,,
,No Phone,3,Tanakpur,,,,
"""


@pytest.fixture(autouse=True)
def clear_customer_cache():
    load_customers.cache_clear()
    yield
    load_customers.cache_clear()


@pytest.fixture
def customer_csv(tmp_path):
    path = tmp_path / "customers.csv"
    path.write_text(CSV_CONTENT, encoding="utf-8")
    return path


class FakeQuery:
    def __init__(self, client) -> None:
        self.client = client

    def select(self, columns):
        self.client.log.append(("select", columns))
        return self

    def in_(self, column, values):
        self.client.log.append(("in_", column, list(values)))
        return self

    def eq(self, column, value):
        self.client.log.append(("eq", column, value))
        return self

    def execute(self):
        return SimpleNamespace(data=self.client.rows)


class FakeSupabaseClient:
    def __init__(self, rows) -> None:
        self.rows = rows
        self.log = []

    def table(self, name):
        self.log.append(("table", name))
        return FakeQuery(self)


def test_record_from_row_accepts_camel_and_snake_case():
    camel = record_from_row({"mobileNumber": "9876543210", "name": "Asha", "latLng": "29.1,80.1", "orderList": "atta"})
    snake = record_from_row({"mobile_number": 9876543210, "name": "Asha", "lat_lng": "29.1,80.1", "order_list": "atta"})

    assert camel.mobile_number == snake.mobile_number == "9876543210"
    assert camel.lat_lng == snake.lat_lng == "29.1,80.1"
    assert camel.order_list == snake.order_list == "atta"


def test_record_from_row_builds_lat_lng_from_separate_columns():
    record = record_from_row({"mobile_number": "9876543210", "latitude": 29.1, "longitude": 80.1})
    assert record.lat_lng == "29.1,80.1"


def test_record_from_row_treats_blank_values_as_missing():
    record = record_from_row({"mobile_number": "9876543210", "name": "  ", "address": ""})
    assert record.name is None
    assert record.address is None


def test_load_customers_keeps_first_row_per_number(customer_csv):
    customers = load_customers(customer_csv)

    assert set(customers) == {"9876543210", "9123456780"}
    assert customers["9876543210"].name == "Asha Devi"
    assert customers["9123456780"].lat_lng is None


def test_load_customers_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_customers(tmp_path / "missing.csv")


def test_csv_lookup_returns_matches_in_requested_order(customer_csv):
    lookup = CsvCustomerLookup(source=customer_csv, batch_size=10)

    records = lookup.find_by_phone_numbers(["9123456780", "9000000000", "9876543210"])

    assert [record.mobile_number for record in records] == ["9123456780", "9876543210"]


def test_csv_lookup_rejects_oversized_batch(customer_csv):
    lookup = CsvCustomerLookup(source=customer_csv, batch_size=2)
    with pytest.raises(ValueError):
        lookup.find_by_phone_numbers(["9000000001", "9000000002", "9000000003"])


def test_supabase_lookup_uses_in_filter():
    client = FakeSupabaseClient([{"mobile_number": "9876543210", "name": "Asha", "lat_lng": "29.1,80.1"}])
    lookup = SupabaseCustomerLookup(client=client, table="customers", store_id="tanakpur", batch_size=10)

    records = lookup.find_by_phone_numbers(["9876543210", "9123456780"])

    assert [record.name for record in records] == ["Asha"]
    assert client.log == [
        ("table", "customers"),
        ("select", "*"),
        ("in_", "mobile_number", ["9876543210", "9123456780"]),
        ("eq", "store_id", "tanakpur"),
    ]


def test_supabase_lookup_skips_empty_request():
    client = FakeSupabaseClient([])
    lookup = SupabaseCustomerLookup(client=client, table="customers", store_id="", batch_size=10)

    assert lookup.find_by_phone_numbers([]) == []
    assert client.log == []


def test_get_customer_lookup_falls_back_to_csv(monkeypatch):
    monkeypatch.setattr(customers_repository, "get_supabase_client", lambda: None)
    assert isinstance(get_customer_lookup(), CsvCustomerLookup)


def test_get_customer_lookup_prefers_supabase(monkeypatch):
    client = FakeSupabaseClient([])
    monkeypatch.setattr(customers_repository, "get_supabase_client", lambda: client)

    lookup = get_customer_lookup()

    assert isinstance(lookup, SupabaseCustomerLookup)
    assert lookup.client is client
