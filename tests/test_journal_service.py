"""Tests for journal CRUD, derived fields and balance settlement."""

import base64
import json
import sqlite3

import pytest
from pydantic import ValidationError

from klinewaker.errors import ImageNotFoundError
from klinewaker.journal import CatalogService, JournalService

PNG = b"\x89PNG\r\n\x1a\nfake"


def _balance(catalog: CatalogService, account_id: str) -> float:
    return catalog.get_account(account_id).balance


def _draft(**overrides) -> dict:
    draft = {
        "date": 1_710_000_000_000,
        "symbol": "MES",
        "direction": "Long",
        "entryPrice": 100,
        "status": "Open",
    }
    draft.update(overrides)
    return draft


class TestCreateEntry:

    def test_derives_usd_pnl_and_risk_reward(self, journal, instrument):
        entry = journal.create_entry(_draft(
            instrumentId=instrument.id, exitPrice=110, stopLoss=95, positionSize=2,
        ))
        assert entry.id
        assert entry.usd_pnl == 100.00
        assert entry.risk_reward == 2.00

    def test_ignores_client_derived_fields(self, journal, instrument):
        entry = journal.create_entry(_draft(
            instrumentId=instrument.id, exitPrice=102, usdPnl=9999, riskReward=42,
        ))
        assert entry.usd_pnl == 10.00
        assert entry.risk_reward is None

    def test_risk_reward_unset_not_zeroed(self, journal, temp_db):
        entry = journal.create_entry(_draft(stopLoss=100, exitPrice=110))
        stored = temp_db.journal.find_one({"id": entry.id})
        assert "riskReward" not in stored

    def test_accepts_snake_case_fields(self, journal, instrument):
        entry = journal.create_entry({
            "date": 0,
            "symbol": "MES",
            "direction": "Short",
            "entry_price": 100,
            "exit_price": 90,
            "instrument_id": instrument.id,
        })
        assert entry.usd_pnl == 50.00

    def test_settled_entry_credits_account(self, journal, catalog, instrument, account):
        journal.create_entry(_draft(
            instrumentId=instrument.id, accountId=account.id, exitPrice=110, status="Closed",
        ))
        assert _balance(catalog, account.id) == 1050.00

    def test_open_entry_leaves_balance(self, journal, catalog, instrument, account):
        journal.create_entry(_draft(
            instrumentId=instrument.id, accountId=account.id, exitPrice=110, status="Open",
        ))
        assert _balance(catalog, account.id) == 1000.00

    def test_invalid_direction_rejected(self, journal):
        with pytest.raises(ValidationError):
            journal.create_entry(_draft(direction="Sideways"))

    def test_saves_images_in_order(self, journal, image_store):
        data_uri = "data:image/png;base64," + base64.b64encode(b"second").decode()
        entry = journal.create_entry(_draft(images=[PNG, data_uri]))

        assert len(entry.image_file_names) == 2
        first, second = entry.image_file_names
        assert (image_store.images_dir / first).read_bytes() == PNG
        assert (image_store.images_dir / second).read_bytes() == b"second"

    def test_legacy_single_image(self, journal):
        entry = journal.create_entry(_draft(image=base64.b64encode(PNG).decode()))
        assert len(entry.image_file_names) == 1
        assert journal.get_image(entry.image_file_names[0]).startswith("data:image/png;base64,")


class TestSettlement:
    """A settled entry's USD P&L is in its account balance exactly once."""

    def test_create_then_delete_round_trip(self, journal, catalog, instrument, account):
        entry = journal.create_entry(_draft(
            instrumentId=instrument.id, accountId=account.id, exitPrice=110, status="Win",
        ))
        assert entry.usd_pnl == 50.00
        assert _balance(catalog, account.id) == 1050.00

        assert journal.delete_entry(entry.id) == 1
        assert _balance(catalog, account.id) == 1000.00
        assert journal.get_entry(entry.id) is None

    def test_open_to_closed_and_back(self, journal, catalog, instrument, account):
        entry = journal.create_entry(_draft(instrumentId=instrument.id, accountId=account.id))
        assert _balance(catalog, account.id) == 1000.00

        assert journal.update_entry(entry.id, {"status": "Closed", "exitPrice": 104}) == 1
        assert journal.get_entry(entry.id).usd_pnl == 20.00
        assert _balance(catalog, account.id) == 1020.00

        journal.update_entry(entry.id, {"status": "Open", "exitPrice": None})
        reopened = journal.get_entry(entry.id)
        assert reopened.exit_price is None
        assert reopened.usd_pnl == 0
        assert _balance(catalog, account.id) == 1000.00

    def test_resettle_on_price_change(self, journal, catalog, instrument, account):
        entry = journal.create_entry(_draft(
            instrumentId=instrument.id, accountId=account.id, exitPrice=110, status="Win",
        ))
        journal.update_entry(entry.id, {"exitPrice": 120})
        assert _balance(catalog, account.id) == 1100.00

        journal.update_entry(entry.id, {"notes": "held too long"})
        assert _balance(catalog, account.id) == 1100.00

    def test_account_change_moves_pnl(self, journal, catalog, instrument, account):
        other = catalog.create_account("Prop", 500.0)
        entry = journal.create_entry(_draft(
            instrumentId=instrument.id, accountId=account.id, exitPrice=110, status="Win",
        ))

        journal.update_entry(entry.id, {"accountId": other.id})

        assert _balance(catalog, account.id) == 1000.00
        assert _balance(catalog, other.id) == 550.00

    def test_instrument_change_recomputes(self, journal, catalog, instrument, account):
        mnq = catalog.create_instrument("MNQ", 2.0)
        entry = journal.create_entry(_draft(
            instrumentId=instrument.id, accountId=account.id, exitPrice=110, status="Win",
        ))
        journal.update_entry(entry.id, {"instrumentId": mnq.id})

        assert journal.get_entry(entry.id).usd_pnl == 20.00
        assert _balance(catalog, account.id) == 1020.00

    def test_removing_account_debits_old(self, journal, catalog, instrument, account):
        entry = journal.create_entry(_draft(
            instrumentId=instrument.id, accountId=account.id, exitPrice=90, status="Loss",
        ))
        assert _balance(catalog, account.id) == 950.00

        journal.update_entry(entry.id, {"accountId": None})
        assert _balance(catalog, account.id) == 1000.00

    def test_patch_cannot_override_derived(self, journal, instrument, temp_db):
        entry = journal.create_entry(_draft(instrumentId=instrument.id, exitPrice=110, stopLoss=95))
        journal.update_entry(entry.id, {"usdPnl": 1, "riskReward": 9, "stopLoss": None})

        stored = temp_db.journal.find_one({"id": entry.id})
        assert stored["usdPnl"] == 50.00
        assert "riskReward" not in stored
        assert "stopLoss" not in stored

    def test_delete_recomputes_missing_usd_pnl(self, journal, catalog, temp_db, instrument, account):
        doc = temp_db.journal.insert(_draft(
            instrumentId=instrument.id, accountId=account.id, exitPrice=102, status="Closed",
        ))
        journal.delete_entry(doc["id"])
        assert _balance(catalog, account.id) == 990.00

    def test_missing_entry(self, journal):
        assert journal.update_entry("nope", {"status": "Win"}) == 0
        assert journal.delete_entry("nope") == 0


class TestAdjustAccountBalance:

    def test_rounds_to_cents(self, journal, catalog, account):
        journal.adjust_account_balance(account.id, 0.1)
        journal.adjust_account_balance(account.id, 0.2)
        assert _balance(catalog, account.id) == 1000.30

    @pytest.mark.parametrize("account_id,delta", [(None, 5), ("", 5)])
    def test_no_account_id_is_noop(self, journal, catalog, account, account_id, delta):
        journal.adjust_account_balance(account_id, delta)
        assert _balance(catalog, account.id) == 1000.00

    @pytest.mark.parametrize("delta", [float("nan"), float("inf")])
    def test_non_finite_delta_is_noop(self, journal, catalog, account, delta):
        journal.adjust_account_balance(account.id, delta)
        assert _balance(catalog, account.id) == 1000.00

    def test_unknown_account_is_noop(self, journal):
        journal.adjust_account_balance("missing", 10)


class TestImages:

    def test_update_removes_and_appends(self, journal, image_store):
        entry = journal.create_entry(_draft(images=[b"one", b"two"]))
        first, second = entry.image_file_names

        journal.update_entry(entry.id, {"removeImageFileNames": [first], "images": [b"three"]})

        names = journal.get_entry(entry.id).image_file_names
        assert names[0] == second
        assert len(names) == 2
        assert not (image_store.images_dir / first).exists()
        assert (image_store.images_dir / names[1]).read_bytes() == b"three"

    def test_update_ignores_images_of_other_entries(self, journal, image_store):
        mine = journal.create_entry(_draft(images=[b"mine"]))
        other = journal.create_entry(_draft(images=[b"other"]))
        other_file = other.image_file_names[0]

        journal.update_entry(mine.id, {"removeImageFileNames": [other_file]})

        assert journal.get_entry(mine.id).image_file_names == mine.image_file_names
        assert journal.get_entry(other.id).image_file_names == [other_file]
        assert journal.get_image(other_file).startswith("data:image/png;base64,")

    def test_single_image_payload_is_not_split(self, journal, image_store):
        uri = "data:image/png;base64," + base64.b64encode(b"chart").decode()
        entry = journal.create_entry(_draft(images=uri))

        assert len(entry.image_file_names) == 1
        assert (image_store.images_dir / entry.image_file_names[0]).read_bytes() == b"chart"

        journal.update_entry(entry.id, {"images": b"raw"})
        assert len(journal.get_entry(entry.id).image_file_names) == 2

    def test_delete_removes_files(self, journal, image_store):
        entry = journal.create_entry(_draft(images=[b"one", b"two"]))
        journal.delete_entry(entry.id)
        for name in entry.image_file_names:
            assert not (image_store.images_dir / name).exists()

    def test_delete_survives_missing_file(self, journal, image_store):
        entry = journal.create_entry(_draft(images=[b"one"]))
        (image_store.images_dir / entry.image_file_names[0]).unlink()
        assert journal.delete_entry(entry.id) == 1

    def test_get_image_missing_raises(self, journal):
        with pytest.raises(ImageNotFoundError):
            journal.get_image("img_missing.png")

    def test_legacy_field_migrated_and_cleared(self, journal, temp_db):
        doc = temp_db.journal.insert(_draft(imageFileName="img_legacy.png"))
        assert journal.get_entry(doc["id"]).image_file_names == ["img_legacy.png"]

        journal.update_entry(doc["id"], {"images": [b"new"]})

        conn = sqlite3.connect(temp_db.db_path)
        try:
            body = json.loads(conn.execute(
                "SELECT body FROM journal WHERE id = ?", (doc["id"],)
            ).fetchone()[0])
        finally:
            conn.close()
        assert "imageFileName" not in body
        assert body["imageFileNames"][0] == "img_legacy.png"
        assert len(body["imageFileNames"]) == 2


class TestListEntries:

    def test_sorted_newest_first_and_filtered(self, journal, account):
        journal.create_entry(_draft(date=1000, symbol="A"))
        journal.create_entry(_draft(date=3000, symbol="C", accountId=account.id))
        journal.create_entry(_draft(date=2000, symbol="B", accountId=account.id))

        assert [e.symbol for e in journal.list_entries()] == ["C", "B", "A"]
        assert [e.symbol for e in journal.list_entries(account_id=account.id)] == ["C", "B"]
        assert [e.symbol for e in journal.list_entries(start=1500, end=2500)] == ["B"]
