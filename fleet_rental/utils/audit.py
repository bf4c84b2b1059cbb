from sqlalchemy.orm import Session
from fleet_rental.models.audit_log import AuditLog


def log_action(
    db: Session,
    user_id: int | None,
    action: str,
    entity_type: str,
    entity_id: int | str | None = None,
    description: str | None = None,
) -> None:
    """
    Write an audit log entry.

    Args:
        db:          Active DB session (will NOT commit; caller commits)
        user_id:     ID of user performing the action (None = system action)
        action:      Verb: CREATE, UPDATE, DELETE, RETURN, etc.
        entity_type: Model name: "Rental", "FleetCar", "Manufacturer", etc.
        entity_id:   Primary key of the affected record (plates are strings)
        description: Human-readable description

    Usage:
        log_action(db, user_id, "RETURN", "Rental", rental.id,
                   f"Rental #{rental.id} returned on {rental.actualReturnDate}")
    """
    entry = AuditLog(
        userId=user_id,
        action=action,
        entityType=entity_type,
        entityId=str(entity_id) if entity_id is not None else None,
        description=description,
    )
    db.add(entry)
    # Do NOT commit here; the caller's transaction commits everything atomically
