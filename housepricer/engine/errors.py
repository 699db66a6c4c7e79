class ValuationError(ValueError):
    """
    Caller-input error raised by the engine. Carries the offending field
    so an adapter can render an actionable message.
    """
    code = "ValuationError"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")

    def to_dict(self) -> dict:
        return {"error": self.code, "field": self.field, "message": self.reason}


class InvalidLocation(ValuationError):
    code = "InvalidLocation"


class InvalidArea(ValuationError):
    code = "InvalidArea"


class InvalidRoomCount(ValuationError):
    code = "InvalidRoomCount"


class InvalidRange(ValuationError):
    code = "InvalidRange"


class UnknownAmenity(ValuationError):
    code = "UnknownAmenity"


class RateCardError(ValueError):
    """Configuration defect in a rate card, raised when the card is loaded."""
