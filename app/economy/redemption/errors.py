class RedemptionError(Exception):
    pass


class RedemptionNotFoundError(RedemptionError):
    pass


class RedemptionExpiredError(RedemptionError):
    pass


class RedemptionAlreadyRedeemedError(RedemptionError):
    pass


class RedemptionCampaignInactiveError(RedemptionError):
    pass


class RedemptionValidationError(RedemptionError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class EligibilityDecodeError(ValueError):
    pass
