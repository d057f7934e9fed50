"""Errors raised by the fusion engine.

Public entry points return these as values instead of letting them propagate.
"""


class FusionError(Exception):
    """Base class for fusion failures."""


class EmptyInputError(FusionError):
    """No candidates (or no source documents) were supplied."""


class UnknownStrategyError(FusionError):
    def __init__(self, strategy):
        self.strategy = strategy
        super().__init__(f"Unknown fusion strategy: {strategy!r}")
