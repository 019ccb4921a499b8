"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class UnsupportedFrequencyError(DomainException):
    """Rule frequency type is not one of DAILY, WEEKLY, MONTHLY, YEARLY"""

    def __init__(self, frequency_type: object):
        super().__init__(f"Unsupported frequency: {frequency_type}")
        self.frequency_type = frequency_type


class InvalidScheduleError(DomainException):
    """Rule schedule cannot produce a strictly later due date"""

    pass


class RuleConflictError(DomainException):
    """Rule changed underneath the sweep (already advanced or deactivated)"""

    pass


class StoreUnavailableError(DomainException):
    """Rule store cannot be reached"""

    pass


class StoreIntegrityError(DomainException):
    """Rule store returned a malformed result"""

    pass


class SweepAlreadyRunningError(DomainException):
    """A sweep is already in progress on this runner"""

    pass
