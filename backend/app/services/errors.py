"""Domain exceptions raised by the cost store and reconciliation engine."""


class NotFound(Exception):
    """A quotation or catalog item referenced by id does not exist."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id


class InvalidAllocationScope(Exception):
    """A real-cost record carries a scope outside per_unit / partial / total."""

    def __init__(self, category: str, record_id: str, scope: object):
        super().__init__(
            f"Invalid allocation scope {scope!r} on {category} record {record_id}"
        )
        self.category = category
        self.record_id = record_id
        self.scope = scope


class InvalidAppliedCount(ValueError):
    """A partial real-cost record covers fewer than 1 or more than the quoted units."""
