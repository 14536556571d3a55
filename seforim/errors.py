"""Error types raised by the import pipeline."""


class StructuralMismatchError(ValueError):
    """Schema and content disagree on the shape of a subtree."""

    def __init__(self, path: str, expected: str, actual: object) -> None:
        self.path = path
        self.expected = expected
        self.actual_type = type(actual).__name__
        super().__init__(f"{path}: expected {expected}, got {self.actual_type}")


class CorpusNotFoundError(FileNotFoundError):
    """The corpus root, or one of its required directories, does not exist."""
