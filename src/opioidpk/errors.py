# src/opioidpk/errors.py
"""Error taxonomy for the PK engine.

Every error raised on purpose by the engine derives from OpioidPkError, so a
batch caller can isolate one drug's failure with a single except clause.
"""


class OpioidPkError(Exception):
    """Base class for all engine errors."""


class InvalidParameter(OpioidPkError, ValueError):
    """Out-of-domain numeric or categorical input."""


class ParameterNotFound(OpioidPkError, KeyError):
    """A required (drug, parameter) key is absent from the parameter store."""

    def __init__(self, drug: str, parameter: str):
        self.drug = drug
        self.parameter = parameter
        super().__init__(f"Parameter '{parameter}' not found for drug '{drug}'")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class NumericOverflow(OpioidPkError, ArithmeticError):
    """A result is non-finite or a denominator collapsed to zero."""


class NumericUnderflow(OpioidPkError, ArithmeticError):
    """A quantity became indistinguishable from zero where it must stay positive."""
