class ReadingValidationError(ValueError):
    """Raised for input that cannot be a meter reading at all.

    Business-normal edge cases (too few readings, zero benchmark, zero
    consumption) never raise; they come back as ``None`` or a neutral value.
    """
