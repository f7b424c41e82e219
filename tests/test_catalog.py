"""Tests for the product catalog."""

import pytest

from catalog import effective_price, primary_image
from errors import InvalidInput, NotFound


class TestLookup:
    def test_find_by_id(self, catalog, make_product):
        pid = make_product()
        assert str(catalog.find_by_id(pid)["_id"]) == pid

    @pytest.mark.parametrize("ident", [None, "", "nope", "64b7f0c2a1b2c3d4e5f60718"])
    def test_find_by_id_missing(self, catalog, ident):
        assert catalog.find_by_id(ident) is None

    def test_get_by_flavour_slug(self, catalog, make_product):
        pid = make_product(flavour="Cookies and Cream")
        assert catalog.get("cookies-and-cream")["id"] == pid

    def test_get_unknown(self, catalog):
        with pytest.raises(NotFound):
            catalog.get("no-such-flavour")

    def test_list_filters(self, catalog, make_product):
        make_product(category="Classic", itemName="Plain Rice")
        make_product(category="Decadent", itemName="Choco Rice", isActive=False)
        assert len(catalog.list()) == 2
        assert [p["itemName"] for p in catalog.list(category="Decadent")] == ["Choco Rice"]
        assert [p["itemName"] for p in catalog.list(q="plain")] == ["Plain Rice"]
        assert [p["itemName"] for p in catalog.list(active_only=True)] == ["Plain Rice"]


class TestValidation:
    def test_discount_must_be_below_price(self, make_product):
        with pytest.raises(InvalidInput, match="Discount price"):
            make_product(price=100, discount_price=100)

    def test_negative_stock(self, make_product):
        with pytest.raises(InvalidInput):
            make_product(stock=-1)

    def test_unknown_category(self, make_product):
        with pytest.raises(InvalidInput):
            make_product(category="Snacks")

    def test_tags_from_comma_string(self, catalog, make_product):
        pid = make_product(tags="breakfast, rice ,,vanilla")
        assert catalog.get(pid)["tags"] == ["breakfast", "rice", "vanilla"]

    def test_update_checks_discount_against_stored_price(self, catalog, make_product):
        pid = make_product(price=100)
        with pytest.raises(InvalidInput):
            catalog.update(pid, {"discountPrice": 150})

    def test_update_partial(self, catalog, make_product):
        pid = make_product(price=100, stock=5)
        updated = catalog.update(pid, {"stock": 9})
        assert updated["stock"] == 9
        assert updated["price"] == 100

    def test_update_unknown(self, catalog):
        with pytest.raises(NotFound):
            catalog.update("64b7f0c2a1b2c3d4e5f60718", {"stock": 1})

    def test_delete(self, catalog, make_product):
        pid = make_product()
        catalog.delete(pid)
        assert catalog.find_by_id(pid) is None
        with pytest.raises(NotFound):
            catalog.delete(pid)


class TestSnapshotHelpers:
    def test_effective_price(self):
        assert effective_price({"price": 500, "discountPrice": 450}) == 450
        assert effective_price({"price": 500, "discountPrice": None}) == 500

    def test_primary_image(self):
        assert primary_image({"images": ["a.jpg", "b.jpg"], "image": "c.jpg"}) == "a.jpg"
        assert primary_image({"images": [], "image": "c.jpg"}) == "c.jpg"
        assert primary_image({}) == ""
