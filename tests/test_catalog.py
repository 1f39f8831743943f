from order_relay.core.catalog import Catalog

from conftest import CATALOG


class TestCatalog:
    def test_lookups_accept_string_or_int_ids(self):
        catalog = Catalog(CATALOG)

        assert catalog.get_product(2) == catalog.get_product("2")
        assert catalog.get_user("7")["name"] == "Anan Srisuk"
        assert catalog.get_user(8) is None

    def test_non_numeric_ids_sort_after_numeric(self):
        catalog = Catalog({"products": [{"product_id": "b"}, {"product_id": 3}, {"product_id": "a"}]})

        assert [p["product_id"] for p in catalog.list_products()] == [3, "a", "b"]

    def test_rows_without_id_are_ignored(self):
        assert Catalog({"users": [{"name": "ghost"}]}).get_user("None") is None
