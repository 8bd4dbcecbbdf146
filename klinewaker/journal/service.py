"""Trade journal orchestration.

Every create, update and delete recomputes the derived fields and keeps the
linked account's balance in step with the entry's settlement state: a settled
entry's USD P&L is in its account balance exactly once.
"""

import logging
import math
import threading
from collections import defaultdict
from typing import Any, Optional

from klinewaker.db.images import ImageStore
from klinewaker.db.store import DataStore
from klinewaker.journal.derivation import (
    as_number,
    compute_risk_reward,
    compute_usd_pnl,
    is_settled,
    round2,
)
from klinewaker.models import Instrument, JournalEntry

logger = logging.getLogger(__name__)

# snake_case attribute name -> stored document key
_DOCUMENT_KEYS = {
    name: (field.alias or name) for name, field in JournalEntry.model_fields.items()
}
_DOCUMENT_KEYS["remove_image_file_names"] = "removeImageFileNames"

_DERIVED_KEYS = ("usdPnl", "riskReward")


def _document_keys(data: dict) -> dict:
    return {_DOCUMENT_KEYS.get(key, key): value for key, value in data.items()}


def _take_images(doc: dict) -> list:
    """Pop raw image payloads (``images`` list or legacy ``image``) from ``doc``."""
    images = doc.pop("images", None) or []
    if isinstance(images, (str, bytes)):
        images = [images]
    images = list(images)
    single = doc.pop("image", None)
    if single:
        images.insert(0, single)
    return images


class JournalService:
    """Creates, updates and deletes journal entries with balance settlement."""

    def __init__(self, store: DataStore, images: ImageStore):
        self._store = store
        self._images = images
        self._locks_guard = threading.Lock()
        self._account_locks: defaultdict[str, threading.Lock] = defaultdict(threading.Lock)

    # ==================== Lookups ====================

    def _find_instrument(self, instrument_id: Optional[str]) -> Optional[Instrument]:
        if not instrument_id:
            return None
        doc = self._store.instruments.find_one({"id": instrument_id})
        return Instrument.model_validate(doc) if doc else None

    def get_entry(self, entry_id: str) -> Optional[JournalEntry]:
        doc = self._store.journal.find_one({"id": entry_id})
        return JournalEntry.model_validate(doc) if doc else None

    def list_entries(
        self,
        account_id: Optional[str] = None,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> list[JournalEntry]:
        """List entries newest first.

        Args:
            account_id: Only entries for this account.
            start: Earliest trade date (epoch millis, inclusive).
            end: Latest trade date (epoch millis, inclusive).
        """
        query: dict[str, Any] = {}
        if account_id:
            query["accountId"] = account_id
        date_range = {}
        if start is not None:
            date_range["$gte"] = start
        if end is not None:
            date_range["$lte"] = end
        if date_range:
            query["date"] = date_range

        docs = self._store.journal.find(query, sort=("date", -1))
        return [JournalEntry.model_validate(doc) for doc in docs]

    def get_image(self, filename: str) -> str:
        """Read an attached image as a data URI.

        Raises:
            ImageNotFoundError: If the image file is missing.
        """
        return self._images.read(filename)

    # ==================== Mutations ====================

    def create_entry(self, draft: dict) -> JournalEntry:
        """Create a journal entry.

        Raw images in the draft are saved to the image store and replaced by
        their filenames. Client-supplied derived fields are ignored.

        Args:
            draft: Entry fields, by attribute name or stored document key.

        Returns:
            The created entry with its id and derived fields.
        """
        doc = _document_keys(draft)
        images = _take_images(doc)
        for key in ("id", "imageFileName", "removeImageFileNames") + _DERIVED_KEYS:
            doc.pop(key, None)

        doc = JournalEntry.model_validate(doc).model_dump(by_alias=True)
        doc["imageFileNames"] = [self._images.save(image) for image in images]

        instrument = self._find_instrument(doc.get("instrumentId"))
        doc["usdPnl"] = compute_usd_pnl(doc, instrument)
        doc["riskReward"] = compute_risk_reward(doc)

        created = self._store.journal.insert(doc)
        logger.debug("Created journal entry %s", created["id"])

        if is_settled(created):
            self.adjust_account_balance(created["accountId"], created["usdPnl"])

        return JournalEntry.model_validate(created)

    def update_entry(self, entry_id: str, patch: dict) -> int:
        """Apply ``patch`` to an entry and re-settle its account balance.

        A ``None`` value in the patch clears that field. Image changes come in
        as ``images`` (new raw payloads to append) and
        ``remove_image_file_names`` (filenames to delete).

        Returns:
            Number of entries modified; 0 if the entry does not exist.
        """
        existing = self._store.journal.find_one({"id": entry_id})
        if existing is None:
            return 0

        patch = _document_keys(patch)
        new_images = _take_images(patch)
        removals = patch.pop("removeImageFileNames", None) or []
        for key in ("id", "imageFileName") + _DERIVED_KEYS:
            patch.pop(key, None)

        replaced_names = patch.pop("imageFileNames", None)

        merged = {**existing, **patch}
        merged = {key: value for key, value in merged.items() if value is not None}
        merged = JournalEntry.model_validate(merged).model_dump(by_alias=True)

        if new_images or removals or replaced_names is not None:
            if replaced_names is None:
                replaced_names = existing["imageFileNames"]
            names = list(replaced_names)
            # Only files attached to this entry may be deleted.
            for name in removals:
                if name in names:
                    names.remove(name)
                    self._images.delete(name)
            names.extend(self._images.save(image) for image in new_images)
            patch["imageFileNames"] = merged["imageFileNames"] = names
            # Drop any legacy single-image field left in the stored body.
            patch["imageFileName"] = None

        instrument = self._find_instrument(merged.get("instrumentId"))
        merged["usdPnl"] = compute_usd_pnl(merged, instrument)
        merged["riskReward"] = compute_risk_reward(merged)

        changes = {key: merged.get(key) for key in patch}
        for key in _DERIVED_KEYS:
            changes[key] = merged[key]
        modified = self._store.journal.update({"id": entry_id}, changes)

        if is_settled(existing):
            self.adjust_account_balance(
                existing["accountId"], -self._settled_amount(existing)
            )
        if is_settled(merged):
            self.adjust_account_balance(merged["accountId"], merged["usdPnl"])

        return modified

    def delete_entry(self, entry_id: str) -> int:
        """Delete an entry, its images and its balance contribution.

        Returns:
            Number of entries removed.
        """
        entry = self._store.journal.find_one({"id": entry_id})
        if entry is None:
            return self._store.journal.remove({"id": entry_id})

        for name in entry["imageFileNames"]:
            self._images.delete(name)

        if is_settled(entry):
            self.adjust_account_balance(entry["accountId"], -self._settled_amount(entry))

        return self._store.journal.remove({"id": entry_id})

    def _settled_amount(self, doc: dict) -> float:
        """The USD P&L that settling ``doc`` put into its account balance."""
        amount = as_number(doc.get("usdPnl"))
        if amount is None:
            amount = compute_usd_pnl(doc, self._find_instrument(doc.get("instrumentId")))
        return amount

    def _lock_for(self, account_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._account_locks[account_id]

    def adjust_account_balance(self, account_id: Optional[str], delta: float) -> None:
        """Add ``delta`` to an account balance, rounded to cents.

        Does nothing for a missing account id, a non-finite delta or an
        unknown account. The read and write happen under a per-account lock.
        """
        if not account_id or not isinstance(delta, (int, float)) or not math.isfinite(delta):
            return

        with self._lock_for(account_id):
            account = self._store.accounts.find_one({"id": account_id})
            if account is None:
                logger.debug("Skipping balance adjustment, account %s not found", account_id)
                return

            balance = as_number(account.get("balance")) or 0.0
            self._store.accounts.update(
                {"id": account_id}, {"balance": round2(balance + delta)}
            )
