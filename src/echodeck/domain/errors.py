"""Error kinds raised by the scheduler and its stores."""


class SchedulerError(Exception):
    """Base class for all echodeck errors."""


class InvalidQuality(SchedulerError, ValueError):
    """An answer quality outside Again(1)..Easy(4) was supplied."""

    def __init__(self, quality: object):
        self.quality = quality
        super().__init__(f"Invalid answer quality {quality!r}; expected 1, 2, 3 or 4")


class PersistenceError(SchedulerError):
    """
    A store failed to write.

    In-memory scheduler state has already been updated when this is raised;
    the next successful save persists it.
    """
