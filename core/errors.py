"""Typed exceptions for CRM domain failures."""

from uuid import UUID


class CRMError(Exception):
    """Base class for CRM domain errors."""


class ValidationError(CRMError):
    """
    Input is malformed or names an unknown enum value.

    Raised per CSV row by the importer and recovered there; raised by
    services for bad command input and surfaced to the caller.
    """


class NotFound(CRMError):
    """An entity referenced by a command does not exist in the caller's agency."""

    def __init__(self, entity_type: str, entity_id: UUID | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} {entity_id} not found")


class InvalidTransition(CRMError):
    """Requested status change is not an edge of the entity's status graph."""

    def __init__(self, entity_type: str, entity_id: UUID | str, current: str, target: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current = current
        self.target = target
        super().__init__(
            f"{entity_type.capitalize()} {entity_id} cannot move from {current} to {target}"
        )


class Unauthorized(CRMError):
    """Actor's role does not allow the requested operation (e.g. an override edge)."""


class ConcurrentModification(CRMError):
    """
    Entity changed between read and write.

    The write was not applied. Caller should re-read and retry.
    """

    def __init__(self, entity_type: str, entity_id: UUID | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type.capitalize()} {entity_id} was modified concurrently; retry"
        )


class ExternalDispatchFailure(CRMError):
    """
    External channel did not accept a message.

    Never leaves the notification engine: caught, recorded and logged there.
    """
