"""Tests for SQLite state store."""

import sqlite3
from decimal import Decimal

import pytest

from ocr_statements.errors import PersistenceError
from ocr_statements.learning import CorrectionLearner, MerchantPatternStore, PersistedState
from ocr_statements.schemas import (
    CorrectionEntry,
    CorrectionRecord,
    MerchantPatternEntry,
    OriginalRef,
    PatternType,
    TransactionType,
)
from ocr_statements.state_store import StateStore


def make_record(description: str = "ACME CO", amount: str = "-42.00") -> CorrectionRecord:
    return CorrectionRecord(
        date_format_original="3/5",
        original_line=f"3/5 {description} 42.00",
        corrected_date="2025-03-05",
        corrected_description=description,
        corrected_amount=Decimal(amount),
        corrected_type="expense" if amount.startswith("-") else "income",
    )


def make_changes(*records: CorrectionRecord) -> PersistedState:
    store = MerchantPatternStore()
    for record in records:
        store.record(record)
    return store.pending()


def acme_entry(day: int, description: str = "ACME CO") -> CorrectionEntry:
    return CorrectionEntry(
        date=f"2025-03-{day:02d}",
        description=description,
        amount=Decimal("42.00"),
        type=TransactionType.EXPENSE,
        original=OriginalRef(line=f"3/{day} {description} 42.00", date_token=f"3/{day}"),
        corrected=True,
    )


class TestStateStore:
    """Test StateStore operations."""

    def test_init_creates_db(self, temp_db):
        """Test database initialization."""
        StateStore(temp_db)
        assert temp_db.exists()

    def test_init_creates_parent_dirs(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "state.db"
        StateStore(db_path)
        assert db_path.exists()

    def test_unusable_path(self, tmp_path):
        blocker = tmp_path / "file.txt"
        blocker.write_text("not a directory")

        with pytest.raises(PersistenceError):
            StateStore(blocker / "state.db")

    def test_empty_state(self, temp_db):
        state = StateStore(temp_db).load_state()

        assert state.patterns == {}
        assert state.corrections == []

    def test_round_trip(self, temp_db):
        store = StateStore(temp_db)
        store.save_state(make_changes(make_record(), make_record(), make_record()))

        state = store.load_state()

        entry = state.patterns["ACME CO"]
        assert entry.count == 3
        assert entry.amounts == [Decimal("-42.00")] * 3
        assert entry.type == PatternType.EXPENSE
        assert state.corrections[0] == make_record()

    def test_pattern_amounts_accumulate(self, temp_db):
        """Amounts from each save are appended to the stored row."""
        store = StateStore(temp_db)
        store.save_state(make_changes(make_record()))
        store.save_state(make_changes(make_record(), make_record("ACME CO", "-10.00")))

        entry = store.load_state().patterns["ACME CO"]

        assert entry.count == 3
        assert entry.amounts == [Decimal("-42.00"), Decimal("-42.00"), Decimal("-10.00")]
        assert entry.type == PatternType.EXPENSE
        assert store.get_stats()["merchant_patterns"] == 1

    def test_every_given_correction_inserted(self, temp_db):
        """Records are appended regardless of how many rows already exist."""
        store = StateStore(temp_db)
        store.save_state(make_changes(make_record(), make_record()))
        store.save_state(make_changes(make_record("WIDGET HUT")))

        assert [r.corrected_description for r in store.load_state().corrections] == [
            "ACME CO",
            "ACME CO",
            "WIDGET HUT",
        ]

    def test_save_replaces_unreadable_row(self, temp_db, caplog):
        store = StateStore(temp_db)
        conn = sqlite3.connect(str(temp_db))
        conn.execute(
            "INSERT INTO merchant_patterns (merchant, count, amounts, type, updated_at) "
            "VALUES ('ACME CO', 1, 'garbage', 'expense', 'now')"
        )
        conn.commit()
        conn.close()

        store.save_state(make_changes(make_record()))

        assert store.load_state().patterns["ACME CO"].amounts == [Decimal("-42.00")]
        assert "Replacing unreadable amounts" in caplog.text

    def test_stats_by_type(self, temp_db):
        store = StateStore(temp_db)
        store.save_state(make_changes(*[make_record()] * 3, make_record("WIDGET HUT")))

        stats = store.get_stats()

        assert stats["patterns_by_type"] == {"expense": 1, "unknown": 1}

    @pytest.mark.parametrize(
        "amounts,type_value",
        [
            ('["not-a-number"]', "expense"),
            ('["1.00"]', "sideways"),
            ("{broken", "expense"),
            ("5", "expense"),
            ('{"a": 1}', "expense"),
        ],
    )
    def test_corrupt_row(self, temp_db, amounts, type_value):
        store = StateStore(temp_db)
        conn = sqlite3.connect(str(temp_db))
        conn.execute(
            "INSERT INTO merchant_patterns (merchant, count, amounts, type, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            ("ACME CO", 1, amounts, type_value, "2025-04-01T00:00:00+00:00"),
        )
        conn.commit()
        conn.close()

        with pytest.raises(PersistenceError):
            store.load_state()

    def test_count_follows_amounts(self, temp_db):
        """A stale count column is ignored; count is the number of amounts."""
        store = StateStore(temp_db)
        conn = sqlite3.connect(str(temp_db))
        conn.execute(
            "INSERT INTO merchant_patterns (merchant, count, amounts, type, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            ("ACME CO", 9, '["-1.00", "-2.00"]', "unknown", "2025-04-01T00:00:00+00:00"),
        )
        conn.commit()
        conn.close()

        entry = store.load_state().patterns["ACME CO"]

        assert entry.count == len(entry.amounts) == 2


class TestPatternStoreIntegration:
    """MerchantPatternStore backed by SQLite."""

    def test_learning_survives_restart(self, temp_db):
        state = StateStore(temp_db)
        store = MerchantPatternStore(loader=state.load_state, saver=state.save_state)
        learner = CorrectionLearner(store)
        learner.apply_user_corrections(
            [
                CorrectionEntry(
                    date=f"2025-03-0{day}",
                    description="ACME CO",
                    amount=Decimal("42.00"),
                    type=TransactionType.EXPENSE,
                    original=OriginalRef(line=f"3/{day} ACME C0 42.00", date_token=f"3/{day}"),
                    corrected=True,
                )
                for day in (1, 2, 3)
            ]
        )

        reloaded = MerchantPatternStore(loader=state.load_state)

        assert reloaded.dominant_type("ACME CO") == PatternType.EXPENSE
        assert len(reloaded.corrections) == 3

    def test_corrupt_database_falls_back_to_empty(self, temp_db, caplog):
        state = StateStore(temp_db)
        conn = sqlite3.connect(str(temp_db))
        conn.execute(
            "INSERT INTO merchant_patterns (merchant, count, amounts, type, updated_at) "
            "VALUES ('ACME CO', 1, 'garbage', 'expense', 'now')"
        )
        conn.commit()
        conn.close()

        store = MerchantPatternStore(loader=state.load_state)

        assert store.patterns == {}
        assert "Could not load merchant patterns" in caplog.text

    def test_non_list_amounts_fall_back_to_empty(self, temp_db, caplog):
        state = StateStore(temp_db)
        conn = sqlite3.connect(str(temp_db))
        conn.execute(
            "INSERT INTO merchant_patterns (merchant, count, amounts, type, updated_at) "
            "VALUES ('BAD', 1, '5', 'expense', 'x')"
        )
        conn.commit()
        conn.close()

        store = MerchantPatternStore(loader=state.load_state, saver=state.save_state)

        assert store.patterns == {}
        assert "Could not load merchant patterns" in caplog.text

    def test_corrections_kept_after_failed_load(self, temp_db):
        """A session that started empty still appends to the stored log."""
        state = StateStore(temp_db)
        first = MerchantPatternStore(loader=state.load_state, saver=state.save_state)
        CorrectionLearner(first).apply_user_corrections([acme_entry(1), acme_entry(2)])

        conn = sqlite3.connect(str(temp_db))
        conn.execute(
            "INSERT INTO merchant_patterns (merchant, count, amounts, type, updated_at) "
            "VALUES ('BROKEN', 1, 'not json', 'expense', 'x')"
        )
        conn.commit()
        conn.close()

        second = MerchantPatternStore(loader=state.load_state, saver=state.save_state)
        assert second.corrections == []

        CorrectionLearner(second).apply_user_corrections([acme_entry(3, "WIDGET HUT")])

        conn = sqlite3.connect(str(temp_db))
        conn.execute("DELETE FROM merchant_patterns WHERE merchant = 'BROKEN'")
        conn.commit()
        conn.close()

        reloaded = state.load_state()
        assert [r.corrected_description for r in reloaded.corrections] == [
            "ACME CO",
            "ACME CO",
            "WIDGET HUT",
        ]
        assert reloaded.patterns["ACME CO"].count == 2
        assert reloaded.patterns["WIDGET HUT"].count == 1

    def test_two_sessions_both_append(self, temp_db):
        state = StateStore(temp_db)
        first = MerchantPatternStore(loader=state.load_state, saver=state.save_state)
        second = MerchantPatternStore(loader=state.load_state, saver=state.save_state)

        CorrectionLearner(first).apply_user_corrections([acme_entry(1)])
        CorrectionLearner(second).apply_user_corrections([acme_entry(2)])

        reloaded = state.load_state()
        assert len(reloaded.corrections) == 2
        assert reloaded.patterns["ACME CO"].count == 2

    def test_second_batch_saves_only_new_records(self, temp_db):
        state = StateStore(temp_db)
        store = MerchantPatternStore(loader=state.load_state, saver=state.save_state)
        learner = CorrectionLearner(store)

        learner.apply_user_corrections([acme_entry(1), acme_entry(2)])
        learner.apply_user_corrections([acme_entry(3)])

        reloaded = state.load_state()
        assert [r.corrected_date for r in reloaded.corrections] == [
            "2025-03-01",
            "2025-03-02",
            "2025-03-03",
        ]
        assert reloaded.patterns["ACME CO"].type == PatternType.EXPENSE

    def test_entry_from_dict_count(self):
        entry = MerchantPatternEntry.from_dict({"count": 7, "amounts": ["-1", "-2"], "type": "expense"})

        assert entry.count == 2
