"""Category rules and the keyword matcher."""

from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ledgersync.database.base import Database
from ledgersync.domain.entities import (
    Category as CategoryEntity,
    CategoryRule,
    TYPE_EXPENSE,
    TYPE_INCOME,
    TYPE_TRANSFER,
    TRANSACTION_TYPES,
)
from ledgersync.domain.errors import ConflictError, ValidationError


# Default rule set, in priority order: (name, type, comma-separated keywords)
DEFAULT_CATEGORIES = [
    ("Housing", TYPE_EXPENSE, "rent,mortgage,hoa"),
    ("Utilities", TYPE_EXPENSE, "electric,gas,water,internet,phone,utility"),
    ("Groceries", TYPE_EXPENSE, "grocery,groceries,whole foods,trader joe,safeway,kroger,publix,aldi"),
    ("Dining", TYPE_EXPENSE, "restaurant,doordash,uber eats,grubhub,starbucks,coffee,mcdonald,chipotle"),
    ("Transportation", TYPE_EXPENSE, "fuel,uber,lyft,parking,transit,metro"),
    ("Shopping", TYPE_EXPENSE, "amazon,target,walmart,costco,best buy"),
    ("Entertainment", TYPE_EXPENSE, "netflix,spotify,hulu,disney,movie,concert,gaming"),
    ("Healthcare", TYPE_EXPENSE, "doctor,pharmacy,cvs,walgreens,medical,dental,hospital"),
    ("Insurance", TYPE_EXPENSE, "insurance,geico,state farm,allstate"),
    ("Subscriptions", TYPE_EXPENSE, "subscription,membership,annual"),
    ("Personal Care", TYPE_EXPENSE, "haircut,salon,gym,fitness"),
    ("Education", TYPE_EXPENSE, "tuition,course,book,udemy"),
    ("Travel", TYPE_EXPENSE, "hotel,airbnb,airline,flight,vacation"),
    ("Gifts & Donations", TYPE_EXPENSE, "gift,donation,charity"),
    ("Income", TYPE_INCOME, "payroll,salary,deposit,direct dep"),
    ("Transfer", TYPE_TRANSFER, "transfer,zelle,venmo,payment"),
    ("Other", TYPE_EXPENSE, ""),
]


def build_rules(categories: Iterable[CategoryEntity]) -> list[CategoryRule]:
    """Flatten categories into ordered keyword rules.

    Categories must already be in priority order; within a category the
    keywords keep the order they were written in.
    """
    rules = []
    for category in categories:
        for keyword in category.keyword_list:
            rules.append(CategoryRule(keyword=keyword, category_id=category.id))
    return rules


class CategoryRuleMatcher:
    """Maps a free-text description to a category id.

    The first rule whose keyword is a case-insensitive substring of the
    description wins. There is no scoring: a broad keyword early in the list
    shadows a more specific one later on.
    """

    def __init__(self, rules: Sequence[CategoryRule]):
        self._rules = tuple((rule.keyword.lower(), rule.category_id) for rule in rules if rule.keyword)

    def __len__(self) -> int:
        return len(self._rules)

    def classify(self, description: Optional[str]) -> Optional[int]:
        """Return the matching category id, or None for uncategorized."""
        if not description:
            return None
        text = description.lower()
        for keyword, category_id in self._rules:
            if keyword in text:
                return category_id
        return None


def transaction_type_for(amount: Decimal, category: Optional[CategoryEntity]) -> str:
    """Derive income/expense/transfer from the category, then the sign."""
    if category is not None and category.category_type == TYPE_TRANSFER:
        return TYPE_TRANSFER
    return TYPE_INCOME if amount > 0 else TYPE_EXPENSE


class CategoryService:
    """Service for managing categories and their rules."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(
        self,
        name: str,
        category_type: str = TYPE_EXPENSE,
        keywords: Optional[str] = None,
        priority: Optional[int] = None,
    ) -> int:
        """Create a category.

        Args:
            name: Category name
            category_type: expense, income or transfer
            keywords: Comma-separated match keywords
            priority: Rule order; defaults to after every existing category

        Returns:
            Category ID

        Raises:
            ValidationError: If the type is unknown
            ConflictError: If the name already exists
        """
        if category_type not in TRANSACTION_TYPES:
            raise ValidationError(
                f"Invalid category type '{category_type}'. Must be one of: {', '.join(TRANSACTION_TYPES)}"
            )
        if self.db.get_category_by_name(name) is not None:
            raise ConflictError(f"Category '{name}' already exists")

        if priority is None:
            existing = self.db.list_categories()
            priority = max((c.priority for c in existing), default=-1) + 1

        return self.db.create_category(
            name=name, category_type=category_type, keywords=keywords, priority=priority
        )

    def get_category(self, category_id: int) -> Optional[CategoryEntity]:
        """Get category by ID."""
        return self.db.get_category(category_id)

    def get_category_by_name(self, name: str) -> Optional[CategoryEntity]:
        """Get category by name."""
        return self.db.get_category_by_name(name)

    def list_categories(self) -> list[CategoryEntity]:
        """List categories in rule priority order."""
        return self.db.list_categories()

    def load_matcher(self) -> CategoryRuleMatcher:
        """Snapshot the current rule set into a matcher."""
        return CategoryRuleMatcher(build_rules(self.db.list_categories()))

    def seed_defaults(self) -> int:
        """Create the default categories that don't exist yet.

        Returns:
            Number of categories created
        """
        created = 0
        for priority, (name, category_type, keywords) in enumerate(DEFAULT_CATEGORIES):
            if self.db.get_category_by_name(name) is not None:
                continue
            self.db.create_category(
                name=name,
                category_type=category_type,
                keywords=keywords or None,
                priority=priority,
            )
            created += 1
        return created
