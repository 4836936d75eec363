from __future__ import annotations

from school_data.repositories import interfaces


class BaseService:
    """
    Base class for services. Holds the unit of work shared by one business
    operation.

    Services keep business logic and orchestration and decide the transaction
    boundary; data access goes through ``self.uow.repository``.
    """

    def __init__(self, uow: interfaces.UnitOfWork) -> None:
        self.uow = uow

    @property
    def repository(self) -> interfaces.Repository:
        return self.uow.repository
