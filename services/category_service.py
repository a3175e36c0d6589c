"""
services/category_service.py
----------------------------
Per-owner categories used to group bills and income.
"""

from typing import Any, Optional

from exceptions import ConflictError, NotFoundError, ValidationError
from models.category import Category
from repositories.category_repo import CategoryRepository
from services import cache_service
from services.cache_service import CacheService
from utils.logger import get_logger

logger = get_logger(__name__)


class CategoryService:
    """Category CRUD plus the ownership check other services rely on."""

    def __init__(self, cache: CacheService):
        self.cache = cache
        self.repo = CategoryRepository()

    def list_categories(self, owner_id: int) -> list[Category]:
        return self.cache.get_or_load(
            (owner_id, cache_service.CATEGORIES),
            lambda: self.repo.get_all(owner_id),
        )

    def create(self, owner_id: int, name: Any) -> Category:
        """
        Add a category. Names are unique per owner, case-insensitively.

        Raises:
            ValidationError: Empty or overlong name.
            ConflictError: The owner already has a category with this name.
        """
        name = self._clean_name(owner_id, name)
        category = self.repo.add(Category(owner_id=owner_id, name=name))
        self.cache.invalidate_many(owner_id, cache_service.CATEGORIES)
        return category

    def rename(self, owner_id: int, category_id: int, name: Any) -> Category:
        """
        Rename a category. Listings embed category names, so they are dropped too.

        Raises:
            NotFoundError: Unknown or foreign category.
            ValidationError / ConflictError: As for ``create``.
        """
        category = self._get_owned(owner_id, category_id)
        category.name = self._clean_name(owner_id, name, exclude_id=category_id)
        self.repo.rename(category)
        self.cache.invalidate_many(
            owner_id, cache_service.CATEGORIES, cache_service.BILLS, cache_service.INCOMES, cache_service.PAYMENTS
        )
        return category

    def delete(self, owner_id: int, category_id: int) -> None:
        """
        Delete an unused category.

        Raises:
            NotFoundError: Unknown or foreign category.
            ConflictError: Bills, income or templates still reference it.
        """
        self._get_owned(owner_id, category_id)
        if self.repo.is_in_use(category_id):
            raise ConflictError(
                "Cannot delete a category that is still in use; reassign or delete its items first",
                {"owner": owner_id, "category": category_id},
            )
        self.repo.delete(category_id, owner_id)
        self.cache.invalidate_many(owner_id, cache_service.CATEGORIES)

    def _get_owned(self, owner_id: int, category_id: int) -> Category:
        category = self.repo.get_by_id(category_id)
        if category is None or category.owner_id != owner_id:
            raise NotFoundError("Category not found", {"owner": owner_id, "category": category_id})
        return category

    def _clean_name(self, owner_id: int, name: Any, exclude_id: Optional[int] = None) -> str:
        name = str(name).strip() if name is not None else ""
        if not name:
            raise ValidationError("Missing required field: name")
        if len(name) > 50:
            raise ValidationError("Category name is longer than 50 characters")
        existing = self.repo.get_by_name(owner_id, name)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(f"Category '{name}' already exists", {"owner": owner_id})
        return name

    def resolve(self, owner_id: int, category_id: Any) -> Optional[int]:
        """
        Validate an optional category reference coming from a request.

        Returns:
            The category id as int, or None when no category was given.

        Raises:
            ValidationError: Malformed id, unknown category, or another owner's category.
        """
        if category_id in (None, ""):
            return None
        try:
            category_id = int(category_id)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid category id: {category_id!r}")
        category = self.repo.get_by_id(category_id)
        if category is None or category.owner_id != owner_id:
            raise ValidationError("Invalid category id", {"owner": owner_id, "category": category_id})
        return category_id
