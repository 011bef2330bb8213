"""Error kinds raised by the aggregation and calendar code."""


class ChargeviewError(Exception):
    """Base class for chargeview errors."""


class MalformedDatasetError(ChargeviewError):
    """A dataset is missing a series or could not be parsed."""


class DomainError(ChargeviewError, ValueError):
    """An input violates a precondition (negative count, reversed range...)."""


class GeneratorFailure(ChargeviewError):
    """The simulation generator raised; the original error is chained."""
