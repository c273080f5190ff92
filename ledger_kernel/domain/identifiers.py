"""Identifier parsing shared by the services and the operations facade."""

from uuid import UUID

from ledger_kernel.exceptions import InvalidIdentifierError


def parse_identifier(value: object, entity_type: str) -> UUID:
    """
    Coerce a caller-supplied id into a UUID.

    Raises:
        InvalidIdentifierError: If the value is missing or not a UUID.
    """
    if isinstance(value, UUID):
        return value
    if value is None or isinstance(value, bool):
        raise InvalidIdentifierError(str(value), entity_type)
    try:
        return UUID(str(value).strip())
    except ValueError:
        raise InvalidIdentifierError(str(value), entity_type) from None
