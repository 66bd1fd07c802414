"""
Category Taxonomy

A category classifies an expense. System categories are a fixed seed set that
always exists; users may add their own on top.

DESIGN DECISION: The taxonomy is an explicit immutable table, not a process
wide registry. Every change (register, deactivate, remove) returns a NEW
taxonomy. Components that need categories receive a taxonomy as an argument,
so tests can swap one in without touching shared state.

CRITICAL: ``find_by_name`` never fails. Unknown names resolve to the
Uncategorized sentinel, which is the safe default for any user input.
"""

from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finance_tracker.exceptions import (
    CategoryInUseError,
    DuplicateNameError,
    NotFoundError,
    ReservedNameError,
    SystemCategoryProtectedError,
)
from finance_tracker.validation.guards import (
    normalize_key,
    optional_text,
    require_hex_color,
    require_text,
)

DEFAULT_COLOR = "#6B7280"
DEFAULT_ICON = "receipt"
UNCATEGORIZED = "Uncategorized"


class Category(BaseModel):
    """
    A named classification for an expense.

    Categories are values: expenses hold a copy, never a live reference.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Display name, unique case-insensitively")
    description: Optional[str] = None
    color: str = DEFAULT_COLOR
    icon: str = DEFAULT_ICON
    is_system_category: bool = False
    is_active: bool = True
    sort_order: int = 0

    @field_validator('name', mode='before')
    @classmethod
    def validate_name(cls, v: str) -> str:
        return require_text(v, "name", max_length=100)

    @field_validator('description', mode='before')
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return optional_text(v, "description", max_length=500)

    @field_validator('color', mode='before')
    @classmethod
    def validate_color(cls, v: str) -> str:
        return require_hex_color(v)

    @field_validator('icon', mode='before')
    @classmethod
    def validate_icon(cls, v: str) -> str:
        return require_text(v, "icon", max_length=50)

    @property
    def key(self) -> str:
        return normalize_key(self.name)

    def matches(self, name: Optional[str]) -> bool:
        return self.key == normalize_key(name)

    def __str__(self) -> str:
        return self.name


SYSTEM_CATEGORIES: tuple[Category, ...] = (
    Category(name="Office", description="Office supplies and equipment",
             color="#3B82F6", icon="building-office", is_system_category=True, sort_order=1),
    Category(name="Travel", description="Business travel expenses",
             color="#10B981", icon="airplane", is_system_category=True, sort_order=2),
    Category(name="Meals", description="Business meals and entertainment",
             color="#F59E0B", icon="utensils", is_system_category=True, sort_order=3),
    Category(name="Software", description="Software licenses and subscriptions",
             color="#8B5CF6", icon="computer", is_system_category=True, sort_order=4),
    Category(name="Marketing", description="Marketing and advertising expenses",
             color="#EF4444", icon="megaphone", is_system_category=True, sort_order=5),
    Category(name="Professional", description="Professional services and consulting",
             color="#6366F1", icon="briefcase", is_system_category=True, sort_order=6),
    Category(name=UNCATEGORIZED, description="Expenses that need categorization",
             color="#9CA3AF", icon="question-mark", is_system_category=True, sort_order=7),
)


class CategoryTaxonomy:
    """
    Immutable table of system and user-defined categories.

    Usage:
        taxonomy = CategoryTaxonomy.default()
        taxonomy = taxonomy.register("Hardware", color="#111111")
        taxonomy.find_by_name("hardware")      # -> Hardware
        taxonomy.find_by_name("no such name")  # -> Uncategorized
    """

    def __init__(
        self,
        system_categories: tuple[Category, ...] = SYSTEM_CATEGORIES,
        user_categories: tuple[Category, ...] = (),
    ):
        system = tuple(system_categories)
        if not any(c.matches(UNCATEGORIZED) for c in system):
            raise ValueError("System categories must include the Uncategorized sentinel")
        if not all(c.is_system_category for c in system):
            raise ValueError("System categories must be flagged is_system_category")
        self._system = system
        self._user = tuple(user_categories)
        self._by_key = {c.key: c for c in self._system + self._user}

    @classmethod
    def default(cls) -> "CategoryTaxonomy":
        return cls()

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @property
    def uncategorized(self) -> Category:
        return self._by_key[normalize_key(UNCATEGORIZED)]

    def system_categories(self) -> list[Category]:
        """The seed list in its stable order."""
        return list(self._system)

    def user_categories(self) -> list[Category]:
        return list(self._user)

    def categories(self, include_inactive: bool = False) -> list[Category]:
        all_categories = self._system + self._user
        if include_inactive:
            return list(all_categories)
        return [c for c in all_categories if c.is_active]

    def find_by_name(self, name: Optional[str]) -> Category:
        """Case-insensitive lookup that falls back to Uncategorized."""
        category = self._by_key.get(normalize_key(name))
        if category is None or not category.is_active:
            return self.uncategorized
        return category

    def get(self, name: str) -> Category:
        """Strict lookup (active or not)."""
        category = self._by_key.get(normalize_key(name))
        if category is None:
            raise NotFoundError(f"Category '{name}' not found", name=name)
        return category

    def contains(self, name: Optional[str]) -> bool:
        return normalize_key(name) in self._by_key

    def is_system_name(self, name: Optional[str]) -> bool:
        return any(c.matches(name) for c in self._system)

    def __iter__(self) -> Iterator[Category]:
        return iter(self._system + self._user)

    def __len__(self) -> int:
        return len(self._system) + len(self._user)

    # -------------------------------------------------------------------------
    # Changes (each returns a new taxonomy)
    # -------------------------------------------------------------------------

    def register(
        self,
        name: str,
        description: Optional[str] = None,
        color: str = DEFAULT_COLOR,
        icon: str = DEFAULT_ICON,
        sort_order: Optional[int] = None,
    ) -> "CategoryTaxonomy":
        category = Category(
            name=name,
            description=description,
            color=color,
            icon=icon,
            sort_order=sort_order if sort_order is not None else len(self) + 1,
        )
        if self.is_system_name(category.name):
            raise ReservedNameError(
                f"'{category.name}' is a system category name", name=category.name
            )
        if category.key in self._by_key:
            raise DuplicateNameError(
                f"A category named '{category.name}' already exists", name=category.name
            )
        return CategoryTaxonomy(self._system, self._user + (category,))

    def deactivate(self, name: str) -> "CategoryTaxonomy":
        category = self._require_user_category(name, "deactivated")
        return self._replace(category, category.model_copy(update={"is_active": False}))

    def activate(self, name: str) -> "CategoryTaxonomy":
        category = self._require_user_category(name, "activated")
        return self._replace(category, category.model_copy(update={"is_active": True}))

    def remove(self, name: str, is_referenced: bool = False) -> "CategoryTaxonomy":
        """
        Hard-delete a user category.

        Referenced categories can only be deactivated.
        """
        category = self._require_user_category(name, "deleted")
        if is_referenced:
            raise CategoryInUseError(
                f"Category '{category.name}' is used by existing expenses or budgets; deactivate it instead",
                name=category.name,
            )
        return CategoryTaxonomy(
            self._system, tuple(c for c in self._user if c.key != category.key)
        )

    def _require_user_category(self, name: str, action: str) -> Category:
        category = self.get(name)
        if category.is_system_category:
            raise SystemCategoryProtectedError(
                f"System category '{category.name}' cannot be {action}",
                name=category.name,
            )
        return category

    def _replace(self, old: Category, new: Category) -> "CategoryTaxonomy":
        return CategoryTaxonomy(
            self._system,
            tuple(new if c.key == old.key else c for c in self._user),
        )
