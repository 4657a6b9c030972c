class VoucherIssuanceError(Exception):
    pass


class VoucherCampaignNotFoundError(VoucherIssuanceError):
    pass


class VoucherCampaignInactiveError(VoucherIssuanceError):
    pass


class VoucherResellerNotFoundError(VoucherIssuanceError):
    pass


class VoucherCodeGenerationError(VoucherIssuanceError):
    pass


class VoucherInvalidRequestError(VoucherIssuanceError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
