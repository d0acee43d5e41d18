class HeartDiseaseError(Exception):
    """Base class for pipeline errors."""


class EncodingError(HeartDiseaseError):
    def __init__(self, field, value, position=None, reason="unknown value"):
        self.field = field
        self.value = value
        self.position = position
        self.reason = reason
        super().__init__(self._describe())

    def _describe(self) -> str:
        message = f"{self.reason} for {self.field}: {self.value!r}"
        if self.position is not None:
            message = f"record {self.position}: {message}"
        return message

    def at(self, position: int) -> "EncodingError":
        return EncodingError(self.field, self.value, position, self.reason)


class EmptyDatasetError(HeartDiseaseError):
    pass


class ModelNotReadyError(HeartDiseaseError):
    pass


class TrainingCancelled(HeartDiseaseError):
    pass
