"""Tests for the SQLAlchemy calculation store."""

from __future__ import annotations

from bond_calc_web.calculation_store import CalculationStore, create_store_from_env


def _save(store, user="user-a", kind="bond", n=1):
    return store.save(user, kind, {"principal": 1000000 + n}, {"type": kind, "monthly_repayment": 10492.56})


class TestCalculationStore:
    def test_save_and_get(self, store):
        result_id = _save(store)
        row = store.get("user-a", result_id)
        assert row["id"] == result_id
        assert row["calculation_type"] == "bond"
        assert row["input_data"] == {"principal": 1000001}
        assert row["result_data"]["monthly_repayment"] == 10492.56
        assert row["created_at"]

    def test_results_are_scoped_per_user(self, store):
        result_id = _save(store, user="user-a")
        _save(store, user="user-b")
        assert store.get("user-b", result_id) is None
        assert len(store.list_for_user("user-a")) == 1
        assert store.list_for_user("") == []

    def test_list_newest_first_and_filter(self, store):
        first = _save(store, kind="bond")
        second = _save(store, kind="transfer")
        assert [row["id"] for row in store.list_for_user("user-a")] == [second, first]
        assert [row["id"] for row in store.list_for_user("user-a", "transfer")] == [second]

    def test_trims_oldest_beyond_cap(self, store):
        ids = [_save(store, n=n) for n in range(7)]
        remaining = [row["id"] for row in store.list_for_user("user-a")]
        assert remaining == list(reversed(ids[2:]))

    def test_delete(self, store):
        result_id = _save(store)
        assert store.delete("user-b", result_id) is False
        assert store.delete("user-a", result_id) is True
        assert store.get("user-a", result_id) is None
        assert store.delete("user-a", result_id) is False

    def test_clear_for_user(self, store):
        _save(store, user="user-a")
        _save(store, user="user-a")
        _save(store, user="user-b")
        assert store.clear_for_user("user-a") == 2
        assert store.list_for_user("user-a") == []
        assert len(store.list_for_user("user-b")) == 1

    def test_create_from_url(self, tmp_path):
        store = create_store_from_env(f"sqlite:///{tmp_path / 'env.sqlite3'}", max_per_user=3)
        assert isinstance(store, CalculationStore)
        _save(store)
        assert len(store.list_for_user("user-a")) == 1
