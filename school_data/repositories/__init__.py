"""
Repository layer for data access.

A generic Repository works over any mapped entity class of the session it is
bound to; a UnitOfWork coordinates several writes of one business operation
through one session and an optional explicit transaction.
"""

from .base import BaseRepository
from .generic import Repository
from .paging import PagedResult
from .unit_of_work import UnitOfWork

__all__ = ["BaseRepository", "PagedResult", "Repository", "UnitOfWork"]
