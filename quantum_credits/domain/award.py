"""Award policy - converts one random byte into a credit grant"""

AWARD_THRESHOLD = 70  # samples strictly above this earn the award
AWARD_CREDITS = 7
SAMPLE_MIN = 0
SAMPLE_MAX = 255


def award(sample: int) -> int:
    """
    Map a random byte to a credit delta.

    A fixed payout, not a proportional one:
    - sample > 70:  7 credits
    - otherwise:    0 credits

    Raises:
        ValueError: If the sample is outside the byte range 0-255
    """
    if not SAMPLE_MIN <= sample <= SAMPLE_MAX:
        raise ValueError(f"Sample {sample} outside byte range {SAMPLE_MIN}-{SAMPLE_MAX}")

    if sample > AWARD_THRESHOLD:
        return AWARD_CREDITS
    return 0
