# StoreBooks - Multi-store financial statements engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Exception and warning types raised by the StoreBooks engine.

Every error raised on purpose by the library derives from
``StoreBooksError`` so that callers (CLI, web layer) can catch the whole
family in one place. Input validation errors additionally derive from
``ValueError`` to stay compatible with code that already expects it.

The engine never swallows these errors: deciding whether to show a partial
statement or to abort is the caller's responsibility.
"""


class StoreBooksError(Exception):
    """Base class for all StoreBooks errors."""


class ValidationError(StoreBooksError, ValueError):
    """Malformed input (negative amount, missing date, unknown enum value...)."""


class MissingInitialBalanceError(ValidationError):
    """A store has no ``initial_balance_date``.

    Such a store cannot be consolidated and cannot receive transactions:
    the caller must exclude it or prompt the user to finish its setup.
    """

    def __init__(self, store_id: str, store_name: str = ""):
        self.store_id = store_id
        self.store_name = store_name
        label = f"{store_name} ({store_id})" if store_name else store_id
        super().__init__(
            f"Store {label} has no initial balance date; "
            "set up its opening balance first."
        )


class InvalidMergeError(StoreBooksError):
    """Attempt to merge a category into itself or into another type."""


class CategoryNotFoundError(StoreBooksError, KeyError):
    """No category with the requested id exists in the registry."""

    def __str__(self) -> str:
        # KeyError quotes its argument, keep the plain message instead.
        return str(self.args[0]) if self.args else ""


class DuplicateCategoryError(ValidationError):
    """A category with the same name already exists for this type."""


class CategoryInUseError(StoreBooksError):
    """A category cannot be deleted while transactions still reference it."""


class UnknownStoreError(ValidationError):
    """A store scope references a store id that does not exist."""


class UnresolvedCategoryWarning(UserWarning):
    """The registry had no entry for a category and a fallback was used."""
