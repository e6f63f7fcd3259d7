"""Errors raised by the key pose learning and recognition code."""


class DimensionMismatchError(ValueError):
    """Two feature vectors that should be compared have different lengths."""

    def __init__(self, operation: str, len_a: int, len_b: int):
        self.operation = operation
        self.len_a = len_a
        self.len_b = len_b
        super().__init__(
            f"({operation}) In order to compare vectors they should have the same size "
            f"({len_a} != {len_b})."
        )


class TrainingError(RuntimeError):
    """Training failed; nothing learned in the failing call has been kept."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        super().__init__(f"Error occurred during training ({stage}): {message}")
