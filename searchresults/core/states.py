from enum import Enum


class ReaderState(str, Enum):
    NOT_STARTED = "not_started"
    IN_SET = "in_set"
    BETWEEN_SETS = "between_sets"
    EXHAUSTED = "exhausted"
    DISPOSED = "disposed"
