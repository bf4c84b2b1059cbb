"""
Tests for cascade planning and execution over the catalog hierarchy.
"""

from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import row_counts
from fleet_rental.models import AuditLog, FleetCar, Rental
from fleet_rental.services.cascade_service import (
    CascadeExecutor, CascadePlanner, CascadeService, DeletionMode, cascade_service,
)
from fleet_rental.services.entity_graph import EntityGraphStore, EntityKind
from fleet_rental.services.fleet_service import fleet_service
from fleet_rental.utils.cancellation import CancellationToken
from fleet_rental.utils.exceptions import (
    ConflictException, DeletionBlockedException, NotFoundException,
    OperationCancelledException, StalePlanException,
)


def _kinds(plan):
    return [kind for kind, _ in plan.steps]


class TestCascadePlanner:
    """Planning is read-only and walks one level at a time."""

    def test_strict_plan_blocked_reports_every_level(self, db, fleet):
        with pytest.raises(DeletionBlockedException) as exc:
            cascade_service.plan(db, EntityKind.MANUFACTURER, fleet.toyota, DeletionMode.STRICT)

        assert exc.value.summary == {
            "MANUFACTURER_MODEL": 2,
            "CAR_MODEL":          2,
            "FLEET_CAR":          3,
            "RENTAL":             2,
        }
        assert {"kind": "RENTAL", "count": 2} in exc.value.details

    def test_collective_plan_is_leaf_first_with_target_last(self, db, fleet):
        plan = cascade_service.plan(db, EntityKind.MANUFACTURER, fleet.toyota, DeletionMode.COLLECTIVE)

        assert _kinds(plan) == [
            EntityKind.RENTAL,
            EntityKind.FLEET_CAR,
            EntityKind.CAR_MODEL,
            EntityKind.MANUFACTURER_MODEL,
            EntityKind.MANUFACTURER,
        ]
        assert plan.steps[-1] == (EntityKind.MANUFACTURER, (fleet.toyota,))
        assert plan.steps[1] == (EntityKind.FLEET_CAR, ("ABC-123", "DEF-456", "XYZ-999"))
        assert plan.size == 2 + 3 + 2 + 2 + 1

    def test_plan_without_dependents_is_target_only(self, db, fleet):
        for mode in DeletionMode:
            plan = cascade_service.plan(db, EntityKind.MANUFACTURER_MODEL, fleet.yaris, mode)
            assert plan.steps == ((EntityKind.MANUFACTURER_MODEL, (fleet.yaris,)),)

    def test_plan_from_middle_level_skips_upper_levels(self, db, fleet):
        plan = cascade_service.plan(db, EntityKind.CAR_MODEL, fleet.corolla_2020, DeletionMode.COLLECTIVE)
        assert _kinds(plan) == [EntityKind.RENTAL, EntityKind.FLEET_CAR, EntityKind.CAR_MODEL]
        assert plan.counts == {"RENTAL": 2, "FLEET_CAR": 2, "CAR_MODEL": 1}

    def test_fleet_car_with_history_is_blocked_in_strict_mode(self, db, fleet):
        # Closed rentals count as dependents too
        with pytest.raises(DeletionBlockedException) as exc:
            cascade_service.plan(db, EntityKind.FLEET_CAR, "ABC-123", DeletionMode.STRICT)
        assert exc.value.summary == {"RENTAL": 2}

    def test_unknown_target(self, db, fleet):
        with pytest.raises(NotFoundException):
            cascade_service.plan(db, EntityKind.MANUFACTURER, 9999, DeletionMode.COLLECTIVE)

    def test_rentals_are_not_a_deletion_target(self, db, fleet):
        with pytest.raises(ValueError):
            cascade_service.plan(db, EntityKind.RENTAL, fleet.active_rental, DeletionMode.STRICT)

    def test_planning_writes_nothing(self, db, fleet):
        before = row_counts(db)
        cascade_service.plan(db, EntityKind.MANUFACTURER, fleet.toyota, DeletionMode.COLLECTIVE)
        assert row_counts(db) == before


class TestDeleteEntity:
    """End-to-end deletion through the service entry point."""

    def test_strict_delete_blocked_changes_nothing(self, db, fleet):
        before = row_counts(db)
        with pytest.raises(DeletionBlockedException):
            cascade_service.delete_entity(db, EntityKind.MANUFACTURER, fleet.toyota)
        assert row_counts(db) == before

    def test_strict_delete_of_leafless_entity(self, db, fleet):
        result = cascade_service.delete_entity(db, EntityKind.FLEET_CAR, "DEF-456", DeletionMode.STRICT)

        assert result.counts == {"FLEET_CAR": 1}
        assert not fleet_service.fleet_car_exists(db, "DEF-456")

    def test_collective_delete_removes_whole_subtree(self, db, fleet):
        result = cascade_service.delete_entity(
            db, EntityKind.MANUFACTURER, fleet.toyota, DeletionMode.COLLECTIVE,
        )

        assert result.counts == {
            "RENTAL": 2, "FLEET_CAR": 3, "CAR_MODEL": 2, "MANUFACTURER_MODEL": 2, "MANUFACTURER": 1,
        }
        with pytest.raises(NotFoundException):
            fleet_service.get_manufacturer(db, fleet.toyota)
        store = EntityGraphStore(db)
        assert store.get(EntityKind.MANUFACTURER_MODEL, fleet.corolla) is None
        assert store.get(EntityKind.FLEET_CAR, "ABC-123") is None
        assert store.get(EntityKind.RENTAL, fleet.active_rental) is None

    def test_collective_delete_leaves_other_subtrees_alone(self, db, fleet):
        cascade_service.delete_entity(db, EntityKind.MANUFACTURER, fleet.toyota, DeletionMode.COLLECTIVE)

        assert row_counts(db) == {
            "Manufacturer": 1, "ManufacturerModel": 1, "CarModel": 1, "FleetCar": 1, "Rental": 1,
        }
        assert fleet_service.get_fleet_car(db, "HON-001")["carModel"]["id"] == fleet.civic_2021

    def test_one_event_per_deleted_entity_in_plan_order(self, db, fleet):
        received = []
        result = cascade_service.delete_entity(
            db, EntityKind.MANUFACTURER_MODEL, fleet.corolla, DeletionMode.COLLECTIVE,
            subscriber=received.append,
        )

        assert received == result.events
        assert len(received) == 2 + 3 + 2 + 1
        assert [e.entity_type for e in received[:2]] == ["Rental", "Rental"]
        assert received[-1].entity_type == "ManufacturerModel"
        assert received[-1].entity_id == str(fleet.corolla)
        assert all(e.action == "DELETED" for e in received)

    def test_audit_row_per_deleted_entity(self, db, fleet):
        cascade_service.delete_entity(
            db, EntityKind.CAR_MODEL, fleet.corolla_2020, DeletionMode.COLLECTIVE, actor_id=fleet.bob,
        )

        rows = db.query(AuditLog).filter(AuditLog.action == "DELETE").all()
        assert len(rows) == 2 + 2 + 1
        assert {r.entityId for r in rows if r.entityType == "FleetCar"} == {"ABC-123", "DEF-456"}
        assert all(r.userId == fleet.bob for r in rows)

    def test_cancelled_delete_rolls_back(self, db, fleet):
        token = CancellationToken()
        token.cancel()
        received = []
        before = row_counts(db)

        with pytest.raises(OperationCancelledException):
            cascade_service.delete_entity(
                db, EntityKind.MANUFACTURER, fleet.toyota, DeletionMode.COLLECTIVE,
                cancel=token, subscriber=received.append,
            )

        assert row_counts(db) == before
        assert received == []
        assert db.query(AuditLog).count() == 0


class TestStalePlans:
    """The executor refuses plans whose membership changed since planning."""

    def _add_rental(self, session_factory, plate, user_id):
        other = session_factory()
        try:
            other.add(Rental(licensePlate=plate, pickUpDate=date(2024, 5, 1),
                             returnDate=date(2024, 5, 4), userId=user_id))
            other.commit()
        finally:
            other.close()

    def test_executor_rejects_stale_plan(self, db, session_factory, fleet):
        planner = CascadePlanner()
        store = EntityGraphStore(db)
        plan = planner.plan(store, EntityKind.CAR_MODEL, fleet.corolla_2022, DeletionMode.COLLECTIVE)
        assert _kinds(plan) == [EntityKind.FLEET_CAR, EntityKind.CAR_MODEL]

        self._add_rental(session_factory, "XYZ-999", fleet.alice)

        with pytest.raises(StalePlanException) as exc:
            CascadeExecutor(planner).execute(store, plan)
        assert isinstance(exc.value, ConflictException)
        assert db.query(FleetCar).filter(FleetCar.licensePlate == "XYZ-999").count() == 1

    def test_delete_entity_replans_once(self, db, session_factory, fleet):
        add_rental = self._add_rental

        class RacingPlanner(CascadePlanner):
            calls = 0

            def plan(self, store, kind, key, mode):
                plan = super().plan(store, kind, key, mode)
                RacingPlanner.calls += 1
                if RacingPlanner.calls == 1:
                    add_rental(session_factory, "XYZ-999", fleet.alice)
                return plan

        service = CascadeService(planner=RacingPlanner())
        result = service.delete_entity(db, EntityKind.CAR_MODEL, fleet.corolla_2022, DeletionMode.COLLECTIVE)

        assert result.counts == {"RENTAL": 1, "FLEET_CAR": 1, "CAR_MODEL": 1}
        assert RacingPlanner.calls == 4

    def test_delete_entity_gives_up_after_replan(self, db, fleet, monkeypatch):
        service = CascadeService()
        attempts = []

        def always_stale(store, plan, *args):
            attempts.append(plan)
            raise StalePlanException()

        monkeypatch.setattr(service.executor, "execute", always_stale)

        with pytest.raises(ConflictException) as exc:
            service.delete_entity(db, EntityKind.MANUFACTURER, fleet.honda, DeletionMode.COLLECTIVE)
        assert not isinstance(exc.value, StalePlanException)
        assert len(attempts) == 2

    def test_integrity_error_surfaces_as_conflict(self, db, fleet, monkeypatch):
        calls = []

        def failing_delete(self, kind, keys):
            calls.append(kind)
            raise IntegrityError("DELETE", {}, Exception("FOREIGN KEY constraint failed"))

        monkeypatch.setattr(EntityGraphStore, "delete_keys", failing_delete)
        before = row_counts(db)

        with pytest.raises(ConflictException) as exc:
            cascade_service.delete_entity(db, EntityKind.MANUFACTURER, fleet.honda, DeletionMode.COLLECTIVE)

        assert not isinstance(exc.value, StalePlanException)
        assert len(calls) == 2

        monkeypatch.undo()
        assert row_counts(db) == before

    def test_integrity_error_is_retried_once(self, db, fleet, monkeypatch):
        """A foreign-key failure mid-delete is treated as a stale plan and re-planned."""
        original = EntityGraphStore.delete_keys
        calls = []

        def fail_first_delete(self, kind, keys):
            calls.append(kind)
            if len(calls) == 1:
                raise IntegrityError("DELETE", {}, Exception("FOREIGN KEY constraint failed"))
            return original(self, kind, keys)

        monkeypatch.setattr(EntityGraphStore, "delete_keys", fail_first_delete)

        result = cascade_service.delete_entity(db, EntityKind.MANUFACTURER, fleet.honda, DeletionMode.COLLECTIVE)

        assert result.counts == {
            "RENTAL": 1, "FLEET_CAR": 1, "CAR_MODEL": 1, "MANUFACTURER_MODEL": 1, "MANUFACTURER": 1,
        }
        with pytest.raises(NotFoundException):
            fleet_service.get_manufacturer(db, fleet.honda)

    def test_executor_reports_integrity_error_as_stale(self, db, fleet, monkeypatch):
        def failing_delete(self, kind, keys):
            raise IntegrityError("DELETE", {}, Exception("FOREIGN KEY constraint failed"))

        monkeypatch.setattr(EntityGraphStore, "delete_keys", failing_delete)
        planner = CascadePlanner()
        store = EntityGraphStore(db)
        plan = planner.plan(store, EntityKind.FLEET_CAR, "DEF-456", DeletionMode.STRICT)

        with pytest.raises(StalePlanException):
            CascadeExecutor(planner).execute(store, plan)


class TestSubscriberFailures:
    """A subscriber that raises never turns a committed delete into an error."""

    def test_delete_still_returns_result(self, db, fleet):
        def broken_subscriber(event):
            raise RuntimeError("audit sink down")

        result = cascade_service.delete_entity(
            db, EntityKind.FLEET_CAR, "DEF-456", DeletionMode.STRICT, subscriber=broken_subscriber,
        )

        assert result.counts == {"FLEET_CAR": 1}
        assert not fleet_service.fleet_car_exists(db, "DEF-456")
