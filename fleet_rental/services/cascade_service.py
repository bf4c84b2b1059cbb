import enum
import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fleet_rental.config import settings
from fleet_rental.services.entity_graph import (
    EntityGraphStore, EntityKind, child_kind, entity_label,
)
from fleet_rental.utils.audit import log_action
from fleet_rental.utils.cancellation import CancellationToken, check_cancelled
from fleet_rental.utils.exceptions import (
    NotFoundException, DeletionBlockedException, ConflictException, StalePlanException,
)
from fleet_rental.utils.notifications import LifecycleEvent, EventSubscriber, publish_lifecycle_event

logger = logging.getLogger(__name__)

DELETABLE_KINDS = (
    EntityKind.MANUFACTURER,
    EntityKind.MANUFACTURER_MODEL,
    EntityKind.CAR_MODEL,
    EntityKind.FLEET_CAR,
)


class DeletionMode(str, enum.Enum):
    STRICT     = "STRICT"
    COLLECTIVE = "COLLECTIVE"


@dataclass(frozen=True)
class DeletionPlan:
    """Leaf-first deletion order. The last step is always the target itself."""
    kind:  EntityKind
    key:   Any
    mode:  DeletionMode
    steps: tuple[tuple[EntityKind, tuple], ...]

    @property
    def counts(self) -> dict[str, int]:
        return {kind.value: len(keys) for kind, keys in self.steps}

    @property
    def size(self) -> int:
        return sum(len(keys) for _, keys in self.steps)


@dataclass
class DeletionResult:
    kind:   EntityKind
    key:    Any
    mode:   DeletionMode
    counts: dict[str, int]
    events: list[LifecycleEvent] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "kind":    self.kind.value,
            "id":      self.key,
            "mode":    self.mode.value,
            "deleted": self.counts,
            "events":  [e.to_dict() for e in self.events],
        }


class CascadePlanner:

    def plan(self, store: EntityGraphStore, kind: EntityKind, key: Any, mode: DeletionMode) -> DeletionPlan:
        """
        Work out what deleting `key` takes.

        Walks the hierarchy downward one level at a time. STRICT raises
        DeletionBlockedException when anything hangs off the target, with
        the dependent count per level; COLLECTIVE returns every dependent
        ordered Rentals → FleetCars → CarModels → ManufacturerModels → target.
        Read-only either way.
        """
        if kind not in DELETABLE_KINDS:
            raise ValueError(f"{kind.value} cannot be deleted through the cascade engine")
        if not store.exists(kind, key):
            raise NotFoundException(entity_label(kind))

        levels: list[tuple[EntityKind, tuple]] = []
        parents = [key]
        child = child_kind(kind)
        while child is not None and parents:
            keys = store.child_keys(child, parents)
            if keys:
                levels.append((child, tuple(keys)))
            parents = keys
            child = child_kind(child)

        if mode == DeletionMode.STRICT and levels:
            raise DeletionBlockedException(
                entity_label(kind),
                {level_kind.value: len(keys) for level_kind, keys in levels},
            )

        steps = tuple(reversed(levels)) + ((kind, (key,)),)
        return DeletionPlan(kind=kind, key=key, mode=mode, steps=steps)


class CascadeExecutor:

    def __init__(self, planner: CascadePlanner):
        self.planner = planner

    def execute(
        self,
        store: EntityGraphStore,
        plan: DeletionPlan,
        actor_id: int | None = None,
        cancel: CancellationToken | None = None,
        subscriber: EventSubscriber | None = None,
    ) -> DeletionResult:
        """
        Apply `plan` in one transaction.

        Membership is recomputed inside the transaction first; a mismatch
        raises StalePlanException and nothing is deleted. Store integrity
        failures (a dependent inserted after the re-check) roll back and count
        as a stale plan too.
        """
        events: list[LifecycleEvent] = []
        try:
            with store.transaction() as db:
                current = self.planner.plan(store, plan.kind, plan.key, plan.mode)
                if current != plan:
                    raise StalePlanException()

                for kind, keys in plan.steps:
                    check_cancelled(cancel)
                    deleted = store.delete_keys(kind, keys)
                    if deleted != len(keys):
                        raise StalePlanException()
                    label = entity_label(kind)
                    for k in keys:
                        log_action(db, actor_id, "DELETE", label, k,
                                   f"Deleted {label} {k} ({plan.mode.value.lower()} delete of "
                                   f"{entity_label(plan.kind)} {plan.key})")
                        events.append(LifecycleEvent("DELETED", label, str(k)))

                db.flush()
                check_cancelled(cancel)
        except IntegrityError as e:
            logger.warning(f"Delete of {entity_label(plan.kind)} {plan.key} hit an integrity error: {e.orig}")
            raise StalePlanException() from e

        for event in events:
            publish_lifecycle_event(event, subscriber)
        logger.info(f"{plan.mode.value} delete of {entity_label(plan.kind)} {plan.key} removed {plan.size} rows")
        return DeletionResult(plan.kind, plan.key, plan.mode, plan.counts, events)


class CascadeService:
    """Entry point for entity deletion: plan, execute, re-plan once if stale."""

    def __init__(self, planner: CascadePlanner | None = None, executor: CascadeExecutor | None = None):
        self.planner  = planner or CascadePlanner()
        self.executor = executor or CascadeExecutor(self.planner)

    def plan(self, db: Session, kind: EntityKind, key: Any, mode: DeletionMode) -> DeletionPlan:
        return self.planner.plan(EntityGraphStore(db), kind, key, mode)

    def delete_entity(
        self,
        db: Session,
        kind: EntityKind,
        key: Any,
        mode: DeletionMode = DeletionMode.STRICT,
        actor_id: int | None = None,
        cancel: CancellationToken | None = None,
        subscriber: EventSubscriber | None = None,
    ) -> DeletionResult:
        store = EntityGraphStore(db)
        attempts = settings.CASCADE_REPLAN_ATTEMPTS
        plan = self.planner.plan(store, kind, key, mode)
        for attempt in range(attempts + 1):
            try:
                return self.executor.execute(store, plan, actor_id, cancel, subscriber)
            except StalePlanException:
                if attempt == attempts:
                    logger.warning(f"Giving up on {entity_label(kind)} {key}: plan stale after {attempts} re-plan(s)")
                    raise ConflictException()
                logger.warning(f"Plan for {entity_label(kind)} {key} went stale, re-planning")
                plan = self.planner.plan(store, kind, key, mode)
        raise ConflictException()


cascade_service = CascadeService()
