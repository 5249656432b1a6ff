import unittest
from time import monotonic
from unittest.mock import patch

from gridcrud.core.deadline import Deadline
from gridcrud.core.errors import (
    IntegrityViolationError,
    NotFoundError,
    OptimisticMismatchError,
    StoreTimeoutError,
    ValidationError,
)
from gridcrud.models.user import User
from gridcrud.schemas.query import SortClause
from tests.base import UsersDbBase, user_values


class StoreReadTests(UsersDbBase):
    def test_count_matches_unbounded_find(self):
        self._seed(6, nick_name="same")
        self._store().create(user_values(50, nick_name="other"))
        store = self._store()
        for predicate in [(), (("nick_name", "same"),), (("nick_name", "other"),), (("nick_name", "none"),), (("nick_name", None),)]:
            with self.subTest(predicate=predicate):
                self.assertEqual(store.count(predicate), len(store.find(predicate, None, 0, None)))

    def test_null_filter_matches_missing_values(self):
        self._seed(2)
        self._store().create(user_values(3, nick_name=None))
        rows = self._store().find((("nick_name", None),))
        self.assertEqual([row.email for row in rows], ["user03@example.com"])

    def test_filter_is_a_conjunction(self):
        ids = self._seed(4)
        rows = self._store().find((("nick_name", "nick02"), ("email", "user02@example.com")))
        self.assertEqual([row.id for row in rows], [ids[1]])
        self.assertEqual(self._store().find((("nick_name", "nick02"), ("email", "user03@example.com"))), [])

    def test_order_then_window(self):
        ids = self._seed(5)
        rows = self._store().find((), SortClause(field="real_name", dir="DESC"), 1, 2)
        self.assertEqual([row.id for row in rows], [ids[3], ids[2]])

    def test_ties_are_broken_by_identifier_so_pages_do_not_overlap(self):
        ids = self._seed(9, nick_name="tie")
        store = self._store()
        order = SortClause(field="nick_name", dir="DESC")
        seen = []
        for offset in (0, 4, 8):
            seen.extend(row.id for row in store.find((), order, offset, 4))
        self.assertEqual(seen, ids)

    def test_no_sort_still_orders_by_identifier(self):
        ids = self._seed(3)
        self.assertEqual([row.id for row in self._store().find(())], ids)

    def test_get_missing_record(self):
        with self.assertRaises(NotFoundError):
            self._store().get(12345)

    def test_expired_deadline_aborts_before_touching_the_database(self):
        self._seed(1)
        deadline = Deadline(timeout_seconds=0.5, started_at=monotonic() - 5)
        with self.assertRaises(StoreTimeoutError):
            self._store(deadline).count(())

    def test_unbounded_deadline_never_expires(self):
        self._seed(1)
        deadline = Deadline(timeout_seconds=None, started_at=monotonic() - 3600)
        self.assertEqual(self._store(deadline).count(()), 1)

    def test_value_the_driver_cannot_bind_is_a_validation_error(self):
        self._seed(1)
        store = self._store()
        with self.assertRaises(ValidationError):
            store.get(10**20)
        with self.assertRaises(ValidationError):
            store.count((("id", 10**20),))
        self.assertEqual(store.count(()), 1)


class StoreWriteTests(UsersDbBase):
    def _real_name(self, record_id):
        with self.SessionLocal() as db:
            row = db.get(User, record_id)
            return None if row is None else row.real_name

    def test_create_assigns_identifier(self):
        row = self._store().create(user_values(1))
        self.assertIsInstance(row.id, int)
        self.assertEqual(self._store().get(row.id).email, "user01@example.com")

    def test_duplicate_unique_field_is_integrity_violation(self):
        self._store().create(user_values(1))
        with self.assertRaises(IntegrityViolationError):
            self._store().create(user_values(2, id_card_number="CARD-0001"))
        self.assertEqual(self._store().count(()), 1)

    def test_update_with_matching_snapshot(self):
        (record_id,) = self._seed(1)
        row = self._store().update(record_id, {"real_name": "User 01", "email": "user01@example.com"}, {"real_name": "Renamed"})
        self.assertEqual(row.real_name, "Renamed")
        self.assertEqual(self._real_name(record_id), "Renamed")

    def test_reads_after_commit_get_a_fresh_statement_timeout(self):
        (record_id,) = self._seed(1)
        store = self._store()
        with patch.object(store, "_apply_statement_timeout", wraps=store._apply_statement_timeout) as timeout:
            store.update(record_id, {"real_name": "User 01"}, {"real_name": "Renamed"})
        self.assertEqual(timeout.call_count, 2)

        store = self._store()
        with patch.object(store, "_apply_statement_timeout", wraps=store._apply_statement_timeout) as timeout:
            store.create(user_values(2))
        self.assertEqual(timeout.call_count, 2)

    def test_update_with_stale_snapshot_leaves_record_untouched(self):
        (record_id,) = self._seed(1)
        with self.assertRaises(OptimisticMismatchError):
            self._store().update(record_id, {"real_name": "Someone Else"}, {"real_name": "Renamed"})
        self.assertEqual(self._real_name(record_id), "User 01")

    def test_update_missing_record(self):
        with self.assertRaises(NotFoundError):
            self._store().update(999, {"real_name": "User 01"}, {"real_name": "Renamed"})

    def test_delete_returns_record_and_second_delete_is_not_found(self):
        (record_id,) = self._seed(1)
        deleted = self._store().delete(record_id, {"email": "user01@example.com"})
        self.assertEqual(deleted.id, record_id)
        self.assertEqual(deleted.email, "user01@example.com")
        with self.assertRaises(NotFoundError):
            self._store().delete(record_id, {"email": "user01@example.com"})

    def test_delete_with_stale_snapshot_keeps_record(self):
        (record_id,) = self._seed(1)
        with self.assertRaises(OptimisticMismatchError):
            self._store().delete(record_id, {"email": "changed@example.com"})
        self.assertEqual(self._real_name(record_id), "User 01")

    def test_bulk_delete_with_unknown_id_deletes_nothing(self):
        ids = self._seed(10)
        with self.assertRaises(NotFoundError) as ctx:
            self._store().delete_many([ids[1], ids[6], 999])
        self.assertEqual(ctx.exception.details["ids"], [999])
        self.assertEqual(self._store().count(()), 10)

    def test_bulk_delete(self):
        ids = self._seed(10)
        self.assertEqual(self._store().delete_many([ids[1], ids[6]]), [ids[1], ids[6]])
        remaining = [row.id for row in self._store().find(())]
        self.assertEqual(remaining, [i for i in ids if i not in (ids[1], ids[6])])

    def test_bulk_update_is_all_or_nothing(self):
        ids = self._seed(3)
        with self.assertRaises(NotFoundError):
            self._store().update_many([ids[0], 999], {"nick_name": "bulk"})
        self.assertEqual(self._store().count((("nick_name", "bulk"),)), 0)

        self.assertEqual(self._store().update_many([ids[0], ids[2]], {"nick_name": "bulk"}), [ids[0], ids[2]])
        self.assertEqual([row.id for row in self._store().find((("nick_name", "bulk"),))], [ids[0], ids[2]])

    def test_bulk_update_constraint_violation_rolls_back(self):
        ids = self._seed(2)
        with self.assertRaises(IntegrityViolationError):
            self._store().update_many(ids, {"id_card_number": "SHARED"})
        self.assertEqual(self._store().count((("id_card_number", "SHARED"),)), 0)


if __name__ == "__main__":
    unittest.main()
