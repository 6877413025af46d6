"""
Exception hierarchy for the American Monte Carlo engine.

Two families of fatal errors are distinguished:

- ``ClassificationError``: an input cash flow does not match any supported
  coupon shape. Raised while building cash-flow descriptors, before any
  simulation runs.
- ``StructuralConsistencyError``: declared sizes disagree or an internal
  invariant is violated (missing grid time, empty simulation grid, negative
  sticky close-out index). These indicate an integration defect, not a
  market or data condition.

Plain parameter validation of value objects keeps raising ``ValueError``.
"""


class AmcError(Exception):
    """Base class for all errors raised by the engine."""


class ClassificationError(AmcError):
    """A cash flow could not be classified into a cash-flow descriptor."""


class UnrecognizedCouponError(ClassificationError):
    """
    The cash flow shape is not part of the supported coupon catalogue.

    Attributes
    ----------
    leg_no : int
        Index of the leg holding the cash flow
    cf_no : int
        Index of the cash flow within its leg
    flow_type : str
        Class name of the offending cash flow
    """

    def __init__(self, leg_no: int, cf_no: int, flow_type: str) -> None:
        self.leg_no = leg_no
        self.cf_no = cf_no
        self.flow_type = flow_type
        super().__init__(
            f"unhandled coupon type {flow_type} in leg {leg_no} cashflow {cf_no}"
        )


class StructuralConsistencyError(AmcError):
    """Array or set sizes disagree, or an internal invariant is broken."""
