"""Aggregate repository facade for connection history persistence."""

from .attempts import AttemptsMixin
from .base import RepositoryBase
from .health import HealthMixin


class HistoryRepository(AttemptsMixin, HealthMixin, RepositoryBase):
    """Facade combining attempt and session health persistence."""

    __slots__ = ()
