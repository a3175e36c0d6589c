"""Tests for per-owner categories."""

import pytest

from exceptions import ConflictError, NotFoundError, ValidationError
from models.recurring import TemplateKind


class TestCreate:

    def test_names_are_unique_per_owner_ignoring_case(self, owner, other_owner, categories):
        categories.create(owner, "Utilities")

        with pytest.raises(ConflictError):
            categories.create(owner, "utilities")
        assert categories.create(other_owner, "Utilities").owner_id == other_owner

    @pytest.mark.parametrize("name", [None, "   ", "x" * 51])
    def test_rejects_invalid_name(self, owner, categories, name):
        with pytest.raises(ValidationError):
            categories.create(owner, name)


class TestRename:

    def test_rename_shows_up_in_bill_listings(self, owner, categories, obligations):
        utilities = categories.create(owner, "Utilities")
        obligations.create_one_time(owner, "BILL", {
            "name": "Water", "amount": 50, "dueDate": "2024-03-10", "categoryId": utilities.id,
        })
        assert obligations.list_bills(owner)[0].category_name == "Utilities"

        renamed = categories.rename(owner, utilities.id, "  Home  ")

        assert renamed.name == "Home"
        assert [c.name for c in categories.list_categories(owner)] == ["Home"]
        assert obligations.list_bills(owner)[0].category_name == "Home"

    def test_rename_to_own_name_in_other_case_is_allowed(self, owner, categories):
        utilities = categories.create(owner, "Utilities")

        assert categories.rename(owner, utilities.id, "UTILITIES").name == "UTILITIES"

    def test_rename_onto_another_category_is_a_conflict(self, owner, categories):
        categories.create(owner, "Utilities")
        food = categories.create(owner, "Food")

        with pytest.raises(ConflictError):
            categories.rename(owner, food.id, "utilities")

    def test_foreign_category_is_not_found(self, owner, other_owner, categories):
        theirs = categories.create(other_owner, "Travel")

        with pytest.raises(NotFoundError):
            categories.rename(owner, theirs.id, "Mine")


class TestDelete:

    def test_unused_category_is_deleted(self, owner, categories):
        food = categories.create(owner, "Food")
        categories.list_categories(owner)

        categories.delete(owner, food.id)

        assert categories.list_categories(owner) == []

    def test_category_used_by_a_bill_is_kept(self, owner, categories, obligations):
        utilities = categories.create(owner, "Utilities")
        obligations.create_one_time(owner, "BILL", {
            "name": "Water", "amount": 50, "dueDate": "2024-03-10", "categoryId": utilities.id,
        })

        with pytest.raises(ConflictError):
            categories.delete(owner, utilities.id)
        assert [c.id for c in categories.list_categories(owner)] == [utilities.id]

    def test_category_used_by_a_template_is_kept(self, owner, categories, recurring, obligations):
        housing = categories.create(owner, "Housing")
        recurring.create_template(owner, TemplateKind.PAYEE, {
            "name": "Rent", "expectedAmount": 1200, "frequency": "ONE_TIME",
            "startDate": "2024-01-15", "categoryId": housing.id,
        })
        # The template alone still holds the reference.
        obligations.delete(owner, obligations.list_bills(owner)[0].id)

        with pytest.raises(ConflictError):
            categories.delete(owner, housing.id)

    def test_unknown_or_foreign_category_is_not_found(self, owner, other_owner, categories):
        theirs = categories.create(other_owner, "Travel")

        with pytest.raises(NotFoundError):
            categories.delete(owner, theirs.id)
        with pytest.raises(NotFoundError):
            categories.delete(owner, 999)
