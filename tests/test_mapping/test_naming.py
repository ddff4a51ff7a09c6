"""Unit tests for Go identifier naming (goforge.mapping.naming)."""

from __future__ import annotations

import pytest

from goforge.mapping.naming import (
    exported_name,
    is_valid_identifier_source,
    is_valid_module_path,
    local_name,
    package_name,
    pluralize,
    snake_name,
    split_words,
    unexported_name,
)


class TestSplitWords:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "name, words",
        [
            ("total_amount", ["total", "amount"]),
            ("HTTPServer", ["HTTP", "Server"]),
            ("userID", ["user", "ID"]),
            ("order-item v2", ["order", "item", "v", "2"]),
        ],
    )
    def test_split(self, name, words):
        assert split_words(name) == words


class TestExportedName:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("total_amount", "TotalAmount"),
            ("customer_id", "CustomerID"),
            ("api_url", "APIURL"),
            ("order-item", "OrderItem"),
            ("3d_model", "X3DModel"),
            ("", "X"),
        ],
    )
    def test_exported(self, name, expected):
        assert exported_name(name) == expected


class TestUnexportedName:
    @pytest.mark.unit
    def test_camel_case(self):
        assert unexported_name("TotalAmount") == "totalAmount"
        assert unexported_name("customer_id") == "customerID"

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["type", "range", "string", "len"])
    def test_reserved_and_predeclared_get_suffix(self, name):
        assert unexported_name(name) == f"{name}_"


class TestLocalName:
    @pytest.mark.unit
    def test_plain(self):
        assert local_name("Order") == "order"

    @pytest.mark.unit
    def test_avoids_given_names(self):
        assert local_name("Service", {"service"}) == "serviceEntity"

    @pytest.mark.unit
    def test_avoids_reserved(self):
        assert local_name("Type") == "typeEntity"


class TestMisc:
    @pytest.mark.unit
    def test_snake_name(self):
        assert snake_name("OrderItem") == "order_item"
        assert snake_name("CustomerID") == "customer_id"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "word, plural",
        [("Order", "Orders"), ("Category", "Categories"), ("Box", "Boxes"), ("Day", "Days"), ("", "")],
    )
    def test_pluralize(self, word, plural):
        assert pluralize(word) == plural

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "module, expected",
        [
            ("github.com/acme/order-service", "orderservice"),
            ("shop", "shop"),
            ("github.com/acme/123", "app"),
            ("example.com/type", "app"),
        ],
    )
    def test_package_name(self, module, expected):
        assert package_name(module) == expected

    @pytest.mark.unit
    def test_module_path_validation(self):
        assert is_valid_module_path("github.com/acme/shop")
        assert not is_valid_module_path("")
        assert not is_valid_module_path("has space")
        assert not is_valid_module_path("/leading")

    @pytest.mark.unit
    def test_identifier_source(self):
        assert is_valid_identifier_source("order item")
        assert not is_valid_identifier_source("9lives")
        assert not is_valid_identifier_source("semi;colon")
