# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Category registry for StoreBooks.

The registry maps every ``(type, name)`` pair of a company to a
classification: cash-flow activity, transaction nature and whether the
category feeds the profit-and-loss statement.

Responsibilities
----------------
1) Lookup
   - ``lookup(type, name)`` returns the category or None. It never raises,
     so the classifier can fall back to its built-in mapping.

2) Maintenance
   - ``upsert`` adds or replaces a category (names are unique per type, a
     system category keeps its type).
   - ``rename`` changes a category name and cascades it to every
     transaction referencing the category.
   - ``reclassify`` changes a category classification and cascades it to
     every transaction referencing the category.
   - ``merge`` re-points all transactions of a source category to a target
     category of the same type, then deletes the source.
   - ``delete`` removes an unused category.

Cascading policy
----------------
The category is the source of truth for classification. Whenever a
category's classification changes (``reclassify``, ``merge``, or a rename
whose payload carries classification fields) the new values are stamped on
its transactions. A bare rename only changes the name: the classification
already stored on transactions is left untouched.

Transactions are immutable: every maintenance operation that touches them
returns a ``CategoryChange`` carrying the full, updated transaction tuple.
Persisting the change atomically is the caller's responsibility.

A transaction references a category by ``category_id`` when it has one
(relational model) and by ``(type, category name)`` otherwise (legacy CSV
model); both keys are kept consistent by every operation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any, Optional

import pandas as pd

from .classifier import BUILTIN_CATEGORIES
from .errors import (
    CategoryInUseError,
    CategoryNotFoundError,
    DuplicateCategoryError,
    InvalidMergeError,
    ValidationError,
)
from .models import Category, Transaction

logger = logging.getLogger(__name__)

# Sentinel for "argument not provided" where None is a meaningful value
# (transaction_nature may legitimately be set to None).
UNSET: Any = object()


@dataclass(frozen=True)
class CategoryChange:
    """
    Result of a registry operation that cascades to transactions.

    Attributes
    ----------
    category:
        The category after the operation (the target for a merge).
    transactions:
        The complete transaction collection after the cascade.
    affected_ids:
        Ids of the transactions that were modified.
    removed_category_id:
        Id of the deleted category (merge source), if any.
    """

    category: Category
    transactions: tuple[Transaction, ...]
    affected_ids: tuple[str, ...]
    removed_category_id: Optional[str] = None


def references(tx: Transaction, category: Category) -> bool:
    """Return True if the transaction belongs to the category."""
    if tx.category_id is not None:
        return tx.category_id == category.id
    return tx.type == category.type and tx.category == category.name


class CategoryRegistry:
    """In-memory category registry of one company."""

    def __init__(self, company_id: str, categories: Iterable[Category] = ()):
        if not company_id:
            raise ValidationError("company_id is required.")
        self.company_id = company_id
        self._by_id: dict[str, Category] = {}
        for category in categories:
            self.upsert(category)

    @classmethod
    def with_system_categories(cls, company_id: str) -> CategoryRegistry:
        """Build a registry seeded with the built-in system categories."""
        seeds = []
        for order, ((type_, name), builtin) in enumerate(BUILTIN_CATEGORIES.items()):
            seeds.append(
                Category(
                    id=f"sys-{type_}-{order:02d}",
                    name=name,
                    type=type_,
                    cash_flow_activity=builtin.cash_flow_activity,
                    transaction_nature=builtin.transaction_nature,
                    include_in_profit_loss=builtin.include_in_profit_loss,
                    is_system=True,
                    sort_order=order,
                )
            )
        return cls(company_id, seeds)

    @classmethod
    def from_frame(cls, company_id: str, df: pd.DataFrame) -> CategoryRegistry:
        """Build a registry from a normalized categories DataFrame.

        Expected columns: id, name, type, cash_flow_activity,
        transaction_nature, include_in_profit_loss, is_system, sort_order
        (as produced by ``io.read_categories``).
        """
        categories = []
        for row in df.to_dict("records"):
            include = bool(row.get("include_in_profit_loss", True))
            nature = row.get("transaction_nature")
            if nature is None or pd.isna(nature) or str(nature).strip() == "":
                # A blank nature defaults to operating unless outside the P&L.
                nature = "operating" if include else None
            categories.append(
                Category(
                    id=str(row["id"]),
                    name=str(row["name"]),
                    type=str(row["type"]),
                    cash_flow_activity=str(row["cash_flow_activity"]),
                    transaction_nature=nature,
                    include_in_profit_loss=include,
                    is_system=bool(row.get("is_system", False)),
                    sort_order=int(row.get("sort_order", 0) or 0),
                )
            )
        return cls(company_id, categories)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, category_id: object) -> bool:
        return category_id in self._by_id

    def lookup(self, type_: str, name: str) -> Optional[Category]:
        """Return the category with this type and name, or None."""
        name = str(name).strip()
        for category in self._by_id.values():
            if category.type == type_ and category.name == name:
                return category
        return None

    def get(self, category_id: str) -> Category:
        try:
            return self._by_id[category_id]
        except KeyError:
            raise CategoryNotFoundError(f"Category {category_id!r} not found.") from None

    def categories(self, type_: Optional[str] = None) -> list[Category]:
        """List categories, optionally of one type, by (sort_order, name)."""
        selected = [
            c for c in self._by_id.values() if type_ is None or c.type == type_
        ]
        return sorted(selected, key=lambda c: (c.sort_order, c.name))

    def usage_count(self, category_id: str, transactions: Iterable[Transaction]) -> int:
        """Number of transactions referencing the category."""
        category = self.get(category_id)
        return sum(1 for tx in transactions if references(tx, category))

    def to_frame(self) -> pd.DataFrame:
        """Registry content as a DataFrame (one row per category)."""
        columns = [
            "id",
            "name",
            "type",
            "cash_flow_activity",
            "transaction_nature",
            "include_in_profit_loss",
            "is_system",
            "sort_order",
        ]
        rows = [{col: getattr(c, col) for col in columns} for c in self.categories()]
        return pd.DataFrame(rows, columns=columns)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def _check_unique_name(self, type_: str, name: str, category_id: str) -> None:
        existing = self.lookup(type_, name)
        if existing is not None and existing.id != category_id:
            raise DuplicateCategoryError(
                f"A {type_} category named {name!r} already exists."
            )

    def upsert(self, category: Category) -> Category:
        """
        Add a new category or replace the one with the same id.

        This does not touch transactions; use ``rename``/``reclassify`` to
        change a category that is already in use.

        Raises:
            DuplicateCategoryError: another category of the same type has
                this name.
            ValidationError: the type of a system category would change.
        """
        current = self._by_id.get(category.id)
        if current is not None and current.is_system and current.type != category.type:
            raise ValidationError(
                f"System category {current.name!r} cannot change its type."
            )
        self._check_unique_name(category.type, category.name, category.id)
        self._by_id[category.id] = category
        return category

    def _cascade(
        self,
        old: Category,
        new: Category,
        transactions: Iterable[Transaction],
        changes: dict[str, Any],
    ) -> tuple[tuple[Transaction, ...], tuple[str, ...]]:
        updated: list[Transaction] = []
        affected: list[str] = []
        for tx in transactions:
            if references(tx, old):
                tx_changes = dict(changes)
                if tx.category_id is not None:
                    tx_changes["category_id"] = new.id
                tx = replace(tx, **tx_changes)
                affected.append(tx.id)
            updated.append(tx)
        return tuple(updated), tuple(affected)

    def rename(
        self,
        category_id: str,
        new_name: str,
        transactions: Iterable[Transaction],
        *,
        cash_flow_activity: Optional[str] = None,
        transaction_nature: Any = UNSET,
        include_in_profit_loss: Optional[bool] = None,
    ) -> CategoryChange:
        """
        Rename a category and cascade the new name to its transactions.

        Classification fields are only changed (on the category and on the
        transactions) when they are explicitly passed.

        Raises:
            CategoryNotFoundError: unknown category id.
            DuplicateCategoryError: the new name is taken for this type.
        """
        old = self.get(category_id)
        fields: dict[str, Any] = {}
        if cash_flow_activity is not None:
            fields["cash_flow_activity"] = cash_flow_activity
        if transaction_nature is not UNSET:
            fields["transaction_nature"] = transaction_nature
        if include_in_profit_loss is not None:
            fields["include_in_profit_loss"] = include_in_profit_loss

        new = replace(old, name=new_name, **fields)
        self._check_unique_name(new.type, new.name, new.id)

        tx_changes: dict[str, Any] = {"category": new.name, **fields}
        updated, affected = self._cascade(old, new, transactions, tx_changes)
        self._by_id[new.id] = new
        logger.info(
            "Renamed category %s from %r to %r (%d transactions updated)",
            category_id,
            old.name,
            new.name,
            len(affected),
        )
        return CategoryChange(category=new, transactions=updated, affected_ids=affected)

    def reclassify(
        self,
        category_id: str,
        transactions: Iterable[Transaction],
        *,
        cash_flow_activity: Optional[str] = None,
        transaction_nature: Any = UNSET,
        include_in_profit_loss: Optional[bool] = None,
    ) -> CategoryChange:
        """
        Change a category classification and stamp it on its transactions.

        Every referencing transaction ends up with the full classification
        of the category, including fields that were stale before.
        """
        old = self.get(category_id)
        fields: dict[str, Any] = {}
        if cash_flow_activity is not None:
            fields["cash_flow_activity"] = cash_flow_activity
        if transaction_nature is not UNSET:
            fields["transaction_nature"] = transaction_nature
        if include_in_profit_loss is not None:
            fields["include_in_profit_loss"] = include_in_profit_loss

        new = replace(old, **fields)
        tx_changes = {
            "cash_flow_activity": new.cash_flow_activity,
            "transaction_nature": new.transaction_nature,
            "include_in_profit_loss": new.include_in_profit_loss,
        }
        updated, affected = self._cascade(old, new, transactions, tx_changes)
        self._by_id[new.id] = new
        logger.info(
            "Reclassified category %r (%d transactions updated)",
            new.name,
            len(affected),
        )
        return CategoryChange(category=new, transactions=updated, affected_ids=affected)

    def merge(
        self,
        source_id: str,
        target_id: str,
        transactions: Iterable[Transaction],
    ) -> CategoryChange:
        """
        Merge the source category into the target category.

        All transactions of the source are re-pointed to the target's name,
        id and classification; the source is then deleted.

        Raises:
            InvalidMergeError: source and target are the same category or
                have different types.
            CategoryNotFoundError: unknown source or target id.
        """
        if source_id == target_id:
            raise InvalidMergeError("Cannot merge a category into itself.")
        source = self.get(source_id)
        target = self.get(target_id)
        if source.type != target.type:
            raise InvalidMergeError(
                f"Cannot merge {source.type} category {source.name!r} into "
                f"{target.type} category {target.name!r}."
            )

        tx_changes = {
            "category": target.name,
            "cash_flow_activity": target.cash_flow_activity,
            "transaction_nature": target.transaction_nature,
            "include_in_profit_loss": target.include_in_profit_loss,
        }
        updated, affected = self._cascade(source, target, transactions, tx_changes)
        del self._by_id[source.id]
        logger.info(
            "Merged category %r into %r (%d transactions re-pointed)",
            source.name,
            target.name,
            len(affected),
        )
        return CategoryChange(
            category=target,
            transactions=updated,
            affected_ids=affected,
            removed_category_id=source.id,
        )

    def delete(self, category_id: str, transactions: Iterable[Transaction]) -> Category:
        """
        Delete a category that no transaction references.

        Raises:
            CategoryInUseError: transactions still reference the category.
        """
        category = self.get(category_id)
        count = self.usage_count(category_id, transactions)
        if count:
            raise CategoryInUseError(
                f"Category {category.name!r} is used by {count} transaction(s); "
                "merge it into another category instead."
            )
        del self._by_id[category_id]
        return category
