"""Instruments, accounts and strategies referenced by journal entries."""

import logging
from typing import Any, Optional, TypeVar

from pydantic import BaseModel

from klinewaker.db.documents import Collection
from klinewaker.db.store import DataStore
from klinewaker.errors import NotFoundError, ReferentialIntegrityError
from klinewaker.models import Account, Instrument, Strategy

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class CatalogService:
    """CRUD for the entities a journal entry can point at.

    Deleting an instrument, account or strategy that any journal entry still
    references is refused with a ReferentialIntegrityError; nothing is
    deleted in that case.
    """

    def __init__(self, store: DataStore):
        self._store = store

    @property
    def store(self) -> DataStore:
        return self._store

    # ==================== Generic helpers ====================

    @staticmethod
    def _create(collection: Collection, model: M) -> M:
        doc = collection.insert(model.model_dump(by_alias=True, exclude={"id"}))
        return type(model).model_validate(doc)

    @staticmethod
    def _list(collection: Collection, model_cls: type[M]) -> list[M]:
        return [model_cls.model_validate(doc) for doc in collection.find(sort=("name", 1))]

    @staticmethod
    def _get(collection: Collection, model_cls: type[M], entity_id: str) -> Optional[M]:
        doc = collection.find_one({"id": entity_id})
        return model_cls.model_validate(doc) if doc else None

    @staticmethod
    def _update(
        collection: Collection, model_cls: type[M], entity_id: str, changes: dict[str, Any]
    ) -> M:
        doc = collection.find_one({"id": entity_id})
        if doc is None:
            raise NotFoundError(f"{model_cls.__name__} not found: {entity_id}")

        current = model_cls.model_validate(doc)
        updated = model_cls.model_validate({**current.model_dump(), **changes})
        collection.update(
            {"id": entity_id}, updated.model_dump(by_alias=True, exclude={"id"})
        )
        return updated

    def _delete_unreferenced(
        self, collection: Collection, entity_id: str, field: str, code: str
    ) -> int:
        references = self._store.journal.count({field: entity_id})
        if references > 0:
            logger.info("Refusing to delete %s: %d journal entries reference it", entity_id, references)
            raise ReferentialIntegrityError(code, references)
        return collection.remove({"id": entity_id})

    # ==================== Instruments ====================

    def create_instrument(self, name: str, point_value_usd: float) -> Instrument:
        return self._create(
            self._store.instruments, Instrument(name=name, point_value_usd=point_value_usd)
        )

    def list_instruments(self) -> list[Instrument]:
        return self._list(self._store.instruments, Instrument)

    def get_instrument(self, instrument_id: str) -> Optional[Instrument]:
        return self._get(self._store.instruments, Instrument, instrument_id)

    def update_instrument(self, instrument_id: str, **changes: Any) -> Instrument:
        """Rename an instrument or change its point value.

        Existing journal entries keep their stored USD P&L until they are
        next updated.
        """
        return self._update(self._store.instruments, Instrument, instrument_id, changes)

    def delete_instrument(self, instrument_id: str) -> int:
        """Delete an instrument no journal entry references.

        Raises:
            ReferentialIntegrityError: ``INSTRUMENT_IN_USE``.
        """
        return self._delete_unreferenced(
            self._store.instruments,
            instrument_id,
            "instrumentId",
            ReferentialIntegrityError.INSTRUMENT_IN_USE,
        )

    # ==================== Accounts ====================

    def create_account(self, name: str, balance: float = 0.0) -> Account:
        return self._create(self._store.accounts, Account(name=name, balance=balance))

    def list_accounts(self) -> list[Account]:
        return self._list(self._store.accounts, Account)

    def get_account(self, account_id: str) -> Optional[Account]:
        return self._get(self._store.accounts, Account, account_id)

    def update_account(self, account_id: str, **changes: Any) -> Account:
        """Rename an account or correct its balance by hand."""
        return self._update(self._store.accounts, Account, account_id, changes)

    def delete_account(self, account_id: str) -> int:
        """Delete an account no journal entry references.

        Raises:
            ReferentialIntegrityError: ``ACCOUNT_IN_USE``.
        """
        return self._delete_unreferenced(
            self._store.accounts,
            account_id,
            "accountId",
            ReferentialIntegrityError.ACCOUNT_IN_USE,
        )

    # ==================== Strategies ====================

    def create_strategy(self, name: str, description: str = "") -> Strategy:
        return self._create(
            self._store.strategies, Strategy(name=name, description=description)
        )

    def list_strategies(self) -> list[Strategy]:
        return self._list(self._store.strategies, Strategy)

    def get_strategy(self, strategy_id: str) -> Optional[Strategy]:
        return self._get(self._store.strategies, Strategy, strategy_id)

    def update_strategy(self, strategy_id: str, **changes: Any) -> Strategy:
        return self._update(self._store.strategies, Strategy, strategy_id, changes)

    def delete_strategy(self, strategy_id: str) -> int:
        """Delete a strategy no journal entry references.

        Raises:
            ReferentialIntegrityError: ``STRATEGY_IN_USE``.
        """
        return self._delete_unreferenced(
            self._store.strategies,
            strategy_id,
            "strategyId",
            ReferentialIntegrityError.STRATEGY_IN_USE,
        )
