"""Tests for filter compilation."""

import pytest

from storefront.catalog.filters import (
    Condition,
    Operator,
    Predicate,
    compile_filters,
    related_predicate,
    text_search_predicate,
)
from storefront.domain.exceptions import ValidationFailedError


class TestCompileFilters:
    """Tests for compile_filters."""

    def test_no_filters_matches_everything(self) -> None:
        """Missing or empty mapping compiles to the empty predicate."""
        assert compile_filters(None).is_empty
        assert compile_filters({}).is_empty

    def test_empty_constraints_are_skipped(self) -> None:
        """Fields with empty constraint sets do not filter."""
        predicate = compile_filters({"category": [], "shipping": [], "price": []})
        assert predicate.is_empty

    def test_membership_constraint(self) -> None:
        """Discrete constraints compile to IN with the legacy name normalised."""
        predicate = compile_filters({"category": ["c1", "c2"]})
        assert predicate.conditions == (
            Condition("category_id", Operator.IN, ("c1", "c2")),
        )

    def test_price_range_is_inclusive(self) -> None:
        """Price compiles to a gte/lte pair."""
        predicate = compile_filters({"price": [10, 20]})
        assert predicate.conditions == (
            Condition("price", Operator.GTE, 10),
            Condition("price", Operator.LTE, 20),
        )

    def test_reversed_price_range_passes_through(self) -> None:
        """min > max is not rejected here."""
        predicate = compile_filters({"price": [50, 10]})
        assert Condition("price", Operator.GTE, 50) in predicate.conditions
        assert Condition("price", Operator.LTE, 10) in predicate.conditions

    @pytest.mark.parametrize("bad_range", [[10], [1, 2, 3], "10-20", 15])
    def test_price_range_must_have_two_bounds(self, bad_range: object) -> None:
        """Price constraints that are not [min, max] are rejected."""
        with pytest.raises(ValidationFailedError) as exc_info:
            compile_filters({"price": bad_range})
        assert exc_info.value.fields == ["price"]

    def test_unknown_fields_pass_through(self) -> None:
        """Unknown fields are compiled opaquely for the store to judge."""
        predicate = compile_filters({"colour": ["red"]})
        assert predicate.conditions == (Condition("colour", Operator.IN, ("red",)),)

    def test_scalar_constraint_is_single_membership(self) -> None:
        """A bare value acts as a one-element set."""
        predicate = compile_filters({"shipping": True})
        assert predicate.conditions == (Condition("shipping", Operator.IN, (True,)),)

    def test_multiple_fields_are_anded(self) -> None:
        """Each non-empty field contributes its conditions."""
        predicate = compile_filters(
            {"category": ["c1"], "shipping": [True], "price": [0, 9]}
        )
        assert len(predicate.conditions) == 4


class TestDerivedPredicates:
    """Tests for the related and text search predicates."""

    def test_related_excludes_self(self) -> None:
        """Related records share the category but not the id."""
        predicate = related_predicate("p1", "c1")
        assert predicate.conditions == (
            Condition("category_id", Operator.EQ, "c1"),
            Condition("id", Operator.NE, "p1"),
        )

    def test_text_search_all_categories(self) -> None:
        """'All' drops the category constraint."""
        predicate = text_search_predicate("py", "All")
        assert predicate.conditions == (Condition("name", Operator.ICONTAINS, "py"),)

    def test_text_search_without_category(self) -> None:
        """No category means no category constraint."""
        assert len(text_search_predicate("py").conditions) == 1

    def test_text_search_with_category(self) -> None:
        """A concrete category is ANDed with the name match."""
        predicate = text_search_predicate("py", "c1")
        assert Condition("category_id", Operator.EQ, "c1") in predicate.conditions

    def test_and_returns_new_predicate(self) -> None:
        """Predicates are immutable."""
        base = Predicate()
        extended = base.and_(Condition("sold", Operator.GTE, 1))
        assert base.is_empty
        assert len(extended.conditions) == 1
