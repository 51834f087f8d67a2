"""Tests for product records and patches."""

from decimal import Decimal

import pytest

from storefront.catalog.records import ImageAsset, Product, ProductPatch, new_product_id
from storefront.domain.exceptions import ValidationFailedError

from tests.factories import make_product

VALID_FIELDS = {
    "name": "Clean Code",
    "description": "A handbook",
    "price": "31.20",
    "category": "cat-books",
    "quantity": "7",
    "shipping": "1",
}


class TestProductPatch:
    """Tests for ProductPatch parsing and application."""

    def test_parses_form_strings(self) -> None:
        """Form strings are coerced to their field types."""
        patch = ProductPatch.from_fields(VALID_FIELDS)
        assert patch.price == Decimal("31.20")
        assert patch.quantity == 7
        assert patch.shipping is True
        assert patch.category_id == "cat-books"

    @pytest.mark.parametrize("raw,expected", [("false", False), ("0", False), (True, True)])
    def test_parses_shipping_flag(self, raw: object, expected: bool) -> None:
        assert ProductPatch.from_fields({"shipping": raw}).shipping is expected

    def test_empty_and_unknown_fields_ignored(self) -> None:
        """Empty strings count as absent, unknown names are dropped."""
        patch = ProductPatch.from_fields({"name": "", "colour": "red"})
        assert patch.is_empty

    def test_invalid_values_rejected(self) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            ProductPatch.from_fields({"price": "cheap", "quantity": "many"})
        assert exc_info.value.fields == ["price", "quantity"]

    def test_fractional_quantity_rejected(self) -> None:
        with pytest.raises(ValidationFailedError):
            ProductPatch.from_fields({"quantity": 2.5})

    def test_apply_preserves_untouched_fields(self) -> None:
        """Only supplied fields change."""
        product = make_product("p1", "Original", "10.00")
        patched = ProductPatch(price=Decimal("12.00")).apply(product)

        assert patched.price == Decimal("12.00")
        assert patched.name == "Original"
        assert patched.description == product.description
        assert product.price == Decimal("10.00")

    def test_apply_without_image_keeps_image(self) -> None:
        """A patch never clears the stored image."""
        image = ImageAsset(data=b"img", content_type="image/png")
        product = make_product("p1", image=image)
        patched = ProductPatch(name="Renamed").apply(product)
        assert patched.image == image

    def test_changes_lists_only_supplied_fields(self) -> None:
        patch = ProductPatch(name="n", quantity=0)
        assert patch.changes() == {"name": "n", "quantity": 0}


class TestProductCreate:
    """Tests for Product.create."""

    def test_create_from_complete_fields(self) -> None:
        product = Product.create(ProductPatch.from_fields(VALID_FIELDS))
        assert product.id
        assert product.name == "Clean Code"
        assert product.sold == 0
        assert product.created_at == product.updated_at

    def test_create_requires_all_fields(self) -> None:
        """Every required field missing is reported."""
        with pytest.raises(ValidationFailedError) as exc_info:
            Product.create(ProductPatch.from_fields({"name": "Only name"}))
        assert set(exc_info.value.fields) == {
            "description",
            "price",
            "category_id",
            "quantity",
            "shipping",
        }

    def test_shipping_false_counts_as_present(self) -> None:
        fields = {**VALID_FIELDS, "shipping": "false"}
        assert Product.create(ProductPatch.from_fields(fields)).shipping is False

    def test_to_dict_never_includes_image(self) -> None:
        product = make_product("p1", image=ImageAsset(data=b"x", content_type="image/gif"))
        data = product.to_dict()
        assert "image" not in data
        assert data["id"] == "p1"


class TestNewProductId:
    """Tests for time-ordered product IDs."""

    def test_format(self) -> None:
        product_id = new_product_id()
        assert len(product_id) == 24
        int(product_id, 16)

    def test_ids_sort_in_generation_order(self) -> None:
        """Many IDs within one millisecond still sort in creation order."""
        ids = [new_product_id() for _ in range(500)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 500

    def test_created_products_get_ordered_ids(self) -> None:
        first = Product.create(ProductPatch.from_fields(VALID_FIELDS))
        second = Product.create(ProductPatch.from_fields(VALID_FIELDS))
        assert first.id < second.id
