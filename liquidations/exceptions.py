# liquidations/exceptions.py


class InvalidStateTransition(Exception):
    """A status change that the record's current status does not allow"""

    def __init__(self, current, target, message=None):
        self.current = current
        self.target = target
        super().__init__(message or f"Cannot change status from '{current}' to '{target}'")


class LiquidationLocked(InvalidStateTransition):
    """Recalculation attempted on an approved or paid liquidation"""

    def __init__(self, liquidation):
        self.liquidation = liquidation
        super().__init__(
            liquidation.status,
            'pending',
            f"Liquidation for {liquidation.month:02d}/{liquidation.year} is {liquidation.status} "
            f"and cannot be recalculated",
        )
