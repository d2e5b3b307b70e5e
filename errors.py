"""
Scheduling Errors
Exception taxonomy shared by the scheduling services and the API layer
"""


class SchedulingError(Exception):
    """Base class for scheduling engine errors"""


class ValidationFailure(SchedulingError, ValueError):
    """Input rejected before any state was touched"""


class InvalidTransition(ValidationFailure):
    """Lifecycle transition out of a terminal notification status"""

    def __init__(self, notification_id: int, current: str, target: str):
        self.notification_id = notification_id
        self.current = current
        self.target = target
        super().__init__(
            f"Notification {notification_id} cannot move from {current} to {target}"
        )


class NotFound(SchedulingError, LookupError):
    """Referenced record does not exist"""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class DeliveryFailure(SchedulingError):
    """Push transport rejected or errored for a recipient"""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)
