"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """An operation would violate a contract, payment or schedule invariant"""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class AuditReasonRequiredError(ValidationError):
    """A tax-critical mutation was attempted without a justification"""

    def __init__(self, message: str = "A reason is required for audited changes"):
        super().__init__(message, field="reason")


class NotFoundError(DomainException):
    """Requested contract, payment or installment does not exist"""

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ImportRowError(DomainException):
    """A single CSV row could not be admitted"""

    pass
