"""SQLAlchemy-backed data store for match queries.

Translates :class:`app.matching.query.MatchFilter` value objects into SELECT
statements over the listings and requirements tables.
"""

from typing import Callable, ContextManager, List, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.models import Requirement, VehicleListing
from app.logging import get_logger
from app.matching.query import (
    REQUIREMENTS,
    VEHICLE_LISTINGS,
    FieldCondition,
    FilterOp,
    MatchFilter,
)

from .database import get_session
from .exceptions import PersistenceError, UnsupportedFilterError
from .schema import RequirementModel, UserModel, VehicleListingModel

logger = get_logger(__name__, component="data_store")

_MODELS = {
    REQUIREMENTS: RequirementModel,
    VEHICLE_LISTINGS: VehicleListingModel,
}

LIKE_ESCAPE = "\\"


def _folds_unicode(session: Session) -> bool:
    """SQLite connections carry the casefold() function registered at connect."""
    return session.get_bind().dialect.name == "sqlite"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the value is matched literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


class SqlDataStore:
    """Runs match filters against the relational database.

    Each ``find`` call opens its own session so the store can be shared by
    engines living in different page contexts.
    """

    def __init__(self, session_factory: Optional[Callable[[], ContextManager[Session]]] = None):
        """Initialize the store.

        Args:
            session_factory: Context-manager factory yielding sessions
                (defaults to :func:`app.persistence.database.get_session`)
        """
        self.session_factory = session_factory or get_session

    def find(self, match_filter: MatchFilter) -> List[Union[Requirement, VehicleListing]]:
        """Return all records of the filter's collection that satisfy it.

        Args:
            match_filter: Filter built by app.matching.query

        Returns:
            Domain models ordered as the filter requests

        Raises:
            UnsupportedFilterError: If the collection or a field is unknown
            PersistenceError: If the query fails
        """
        model = _MODELS.get(match_filter.collection)
        if model is None:
            raise UnsupportedFilterError(f"Unknown collection: {match_filter.collection}")

        columns = [self._column(model, condition.field) for condition in match_filter.conditions]
        order_column = self._column(model, match_filter.order_by)
        ordering = order_column.desc() if match_filter.descending else order_column.asc()

        try:
            with self.session_factory() as session:
                unicode_fold = _folds_unicode(session)
                clauses = [
                    self._to_clause(column, condition, unicode_fold)
                    for column, condition in zip(columns, match_filter.conditions)
                ]
                if model is RequirementModel:
                    stmt = (
                        select(RequirementModel, UserModel)
                        .outerjoin(UserModel, UserModel.id == RequirementModel.posted_by)
                        .where(*clauses)
                        .order_by(ordering)
                    )
                    rows = session.execute(stmt).all()
                    records = [requirement.to_domain(poster) for requirement, poster in rows]
                else:
                    stmt = select(model).where(*clauses).order_by(ordering)
                    records = [row.to_domain() for row in session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            raise PersistenceError(f"Match query on {match_filter.collection} failed: {e}") from e

        logger.debug(
            f"Match query returned {len(records)} records",
            extra={
                "event": "data_store.find",
                "collection": match_filter.collection,
                "condition_count": len(match_filter.conditions),
                "result_count": len(records),
            },
        )
        return records

    @staticmethod
    def _column(model, field_name: str):
        column = getattr(model, field_name, None)
        if column is None:
            raise UnsupportedFilterError(f"Unknown field {field_name} on {model.__tablename__}")
        return column

    @staticmethod
    def _to_clause(column, condition: FieldCondition, unicode_fold: bool):
        value = condition.value

        if condition.op is FilterOp.EQ:
            return column == value
        if condition.op is FilterOp.IEQ:
            if unicode_fold:
                return func.casefold(column) == str(value).casefold()
            return func.lower(column) == str(value).lower()
        if condition.op is FilterOp.ICONTAINS:
            if unicode_fold:
                pattern = f"%{escape_like(str(value).casefold())}%"
                return func.casefold(column).like(pattern, escape=LIKE_ESCAPE)
            return column.ilike(f"%{escape_like(str(value))}%", escape=LIKE_ESCAPE)
        raise UnsupportedFilterError(f"Unsupported filter operator: {condition.op}")
