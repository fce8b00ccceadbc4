"""echodeck: spaced-repetition scheduling for subtitle phrase cards."""

from echodeck.consts import VERSION

__version__ = VERSION
