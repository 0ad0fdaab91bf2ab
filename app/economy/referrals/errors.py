class ReferralError(Exception):
    pass


class ReferralCodeGenerationExhaustedError(ReferralError):
    pass
