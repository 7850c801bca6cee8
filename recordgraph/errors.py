"""
Normalization Errors

Fatal contract violations between the normalizer and its collaborators
(query compiler, transport, store owner). Data inconsistencies that can be
tolerated are NOT raised; they go to the diagnostics sink instead.
"""


class NormalizationError(Exception):
    """Base class for fatal normalization failures."""
    pass


class RootRecordMissingError(NormalizationError):
    """Raised when the record anchoring a write is not in the source."""

    def __init__(self, data_id: str):
        super().__init__(f"Expected root record `{data_id}` to exist.")
        self.data_id = data_id


class UndefinedVariableError(NormalizationError):
    """Raised when a selection references a variable that was not provided."""

    def __init__(self, name: str):
        super().__init__(f"Undefined variable `{name}`.")
        self.name = name


class PayloadShapeError(NormalizationError):
    """Raised when the payload does not have the shape the selection expects."""
    pass


class InvalidDataIDError(NormalizationError):
    """Raised when a resolved record identity is not a string."""
    pass


class RecordValueError(Exception):
    """Raised when a record slot is read as the wrong kind of value."""
    pass
