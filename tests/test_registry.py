from unittest import TestCase

from stakepool.services.errors import (
    InvalidArgument,
    OperatorNotFound,
    OperatorNotFoundAtIndex,
)
from stakepool.services.registry import OperatorRecord, OperatorRegistry

from helpers import add_operator, make_db


class TestOperatorRegistry(TestCase):
    def setUp(self) -> None:
        self.db = make_db()
        self.session = self.db.SessionLocal()
        self.registry = OperatorRegistry(self.session)

    def tearDown(self) -> None:
        self.session.close()
        self.db.engine.dispose()

    def test_set_appends_in_registration_order(self) -> None:
        self.assertEqual(add_operator(self.registry, "alpha"), 0)
        self.assertEqual(add_operator(self.registry, "beta"), 1)
        self.assertEqual(add_operator(self.registry, "gamma"), 2)
        self.assertEqual(self.registry.get_count(), 3)
        self.assertEqual(self.registry.get_by_index(1).name, "beta")

    def test_update_keeps_index(self) -> None:
        add_operator(self.registry, "alpha", keys=1, limit=1)
        add_operator(self.registry, "beta")

        index = add_operator(self.registry, "alpha", keys=9, limit=4)

        self.assertEqual(index, 0)
        self.assertEqual(self.registry.get_count(), 2)
        self.assertEqual(self.registry.get("alpha").keys, 9)
        self.assertEqual(self.registry.get_by_index(0).limit, 4)

    def test_index_stable_across_updates_of_other_operators(self) -> None:
        names = [f"op{i}" for i in range(6)]
        created = {name: add_operator(self.registry, name) for name in names}

        for round_number in range(3):
            for name in names[::-1]:
                add_operator(self.registry, name, keys=round_number, limit=round_number)
            add_operator(self.registry, f"late{round_number}")

        for name, index in created.items():
            self.assertEqual(self.registry.get_by_index(index).name, name)
            self.assertEqual(self.registry.get_index(name), index)

    def test_get_unknown_name_fails(self) -> None:
        with self.assertRaises(OperatorNotFound):
            self.registry.get("missing")

    def test_get_by_index_out_of_bounds_fails(self) -> None:
        add_operator(self.registry, "alpha")
        with self.assertRaises(OperatorNotFoundAtIndex):
            self.registry.get_by_index(1)
        with self.assertRaises(OperatorNotFoundAtIndex):
            self.registry.get_by_index(-1)

    def test_inactive_operator_is_still_addressable(self) -> None:
        add_operator(self.registry, "alpha")
        add_operator(self.registry, "beta", active=False)

        self.assertFalse(self.registry.get("beta").active)
        self.assertEqual(self.registry.get_by_index(1).name, "beta")
        self.assertEqual([op.name for op in self.registry.get_all_active()], ["alpha"])

    def test_reactivation_keeps_index(self) -> None:
        add_operator(self.registry, "alpha", active=False)
        add_operator(self.registry, "beta")
        index = add_operator(self.registry, "alpha", active=True)

        self.assertEqual(index, 0)
        self.assertEqual(
            [op.name for op in self.registry.get_all_active()], ["alpha", "beta"]
        )

    def test_fundable_view(self) -> None:
        add_operator(self.registry, "open", keys=5, limit=5, funded=2)
        add_operator(self.registry, "inactive", keys=5, limit=5, active=False)
        add_operator(self.registry, "no-keys", keys=3, limit=10, funded=3)
        add_operator(self.registry, "at-limit", keys=10, limit=4, funded=4)
        add_operator(self.registry, "stopped", keys=4, limit=4, funded=4, stopped=2)
        add_operator(self.registry, "fresh", keys=1, limit=1)

        fundable = self.registry.get_all_fundable()

        self.assertEqual(
            [(op.name, index) for op, index in fundable], [("open", 0), ("fresh", 5)]
        )
        self.assertEqual(fundable[0][0].capacity, 3)

    def test_snapshots_are_detached(self) -> None:
        add_operator(self.registry, "alpha", keys=1, limit=1)
        snapshot = self.registry.get("alpha")
        snapshot.keys = 50

        self.assertEqual(self.registry.get("alpha").keys, 1)

    def test_rejects_stopped_above_funded(self) -> None:
        with self.assertRaises(InvalidArgument):
            add_operator(self.registry, "alpha", funded=1, stopped=2)

    def test_rejects_negative_counts(self) -> None:
        with self.assertRaises(InvalidArgument):
            add_operator(self.registry, "alpha", keys=-1)

    def test_rejects_mismatched_name(self) -> None:
        with self.assertRaises(InvalidArgument):
            self.registry.set("alpha", OperatorRecord(name="beta", operator_address="x"))

    def test_active_validators_and_capacity(self) -> None:
        record = OperatorRecord(
            name="alpha", operator_address="x", keys=8, limit=6, funded=4, stopped=1
        )
        self.assertEqual(record.active_validators, 3)
        self.assertEqual(record.capacity, 2)
        self.assertTrue(record.fundable)
        self.assertFalse(OperatorRecord(name="b", operator_address="x").fundable)
