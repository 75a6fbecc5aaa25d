"""Document store boundary.

Services talk to the listing collection through ``DocumentStore``: a
small query surface of equality/range/membership predicates, a single
ordering, a limit and a resume-after cursor, plus insert and partial
update. ``SqlDocumentStore`` is the SQLAlchemy-backed implementation used
by the application; tests substitute an in-memory store.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError

from campus_market.constants import LISTINGS_COLLECTION
from campus_market.utils.errors import InvalidArgument, store_error_from_exception

logger = logging.getLogger(__name__)

EQ = '=='
GTE = '>='
LTE = '<='
IN = 'in'
OPERATORS = (EQ, GTE, LTE, IN)

# Fields the store assigns itself; client values are ignored on writes
SERVER_FIELDS = ('id', 'created_at', 'updated_at')


@dataclass(frozen=True)
class Predicate:
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f'Unsupported operator: {self.op}')

    def matches(self, data: dict) -> bool:
        """Evaluate against a plain document (missing fields never match)."""
        if self.field not in data or data[self.field] is None:
            return False
        actual = data[self.field]
        if self.op == EQ:
            return actual == self.value
        if self.op == IN:
            return actual in self.value
        try:
            if self.op == GTE:
                return actual >= self.value
            return actual <= self.value
        except TypeError:
            return False


@dataclass
class Query:
    collection: str
    predicates: List[Predicate] = field(default_factory=list)
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None
    start_after: Optional[str] = None


@dataclass
class DocumentSnapshot:
    id: str
    data: Dict[str, Any]


class DocumentStore:
    """Interface to a schemaless document collection."""

    def run_query(self, query: Query) -> List[DocumentSnapshot]:
        raise NotImplementedError

    def get(self, collection: str, doc_id: str) -> Optional[DocumentSnapshot]:
        raise NotImplementedError

    def insert(self, collection: str, data: dict) -> DocumentSnapshot:
        raise NotImplementedError

    def update(self, collection: str, doc_id: str, fields: dict) -> Optional[DocumentSnapshot]:
        raise NotImplementedError


class SqlDocumentStore(DocumentStore):
    """Document store over Flask-SQLAlchemy tables.

    Each collection maps to one model exposing ``column_for``,
    ``apply_fields`` and ``to_document``. Every SQLAlchemy failure is
    rolled back and re-raised as ``StoreUnavailable``.
    """

    def __init__(self, session, models=None):
        if models is None:
            from campus_market.models import ListingDocument
            models = {LISTINGS_COLLECTION: ListingDocument}
        self.session = session
        self.models = models

    def _model(self, collection):
        try:
            return self.models[collection]
        except KeyError:
            raise ValueError(f'Unknown collection: {collection}')

    def _rollback(self, error):
        logger.error(f'Document store error: {error}')
        try:
            self.session.rollback()
        except SQLAlchemyError as rollback_error:
            logger.error(f'Rollback failed: {rollback_error}')
        return store_error_from_exception(error)

    @staticmethod
    def _clause(model, predicate):
        column = model.column_for(predicate.field)
        if predicate.op == EQ:
            return column == predicate.value
        if predicate.op == GTE:
            return column >= predicate.value
        if predicate.op == LTE:
            return column <= predicate.value
        return column.in_(list(predicate.value))

    def run_query(self, query):
        model = self._model(query.collection)
        try:
            stmt = self.session.query(model).filter(
                *[self._clause(model, p) for p in query.predicates]
            )

            if query.order_by:
                order_column = model.column_for(query.order_by)
                if query.descending:
                    stmt = stmt.order_by(order_column.desc(), model.id.desc())
                else:
                    stmt = stmt.order_by(order_column.asc(), model.id.asc())
            else:
                stmt = stmt.order_by(model.id.asc())

            if query.start_after:
                anchor = self.session.get(model, query.start_after)
                if anchor is None:
                    raise InvalidArgument('Cursor does not reference a known document')
                stmt = stmt.filter(self._after(model, query, anchor))

            if query.limit is not None:
                stmt = stmt.limit(query.limit)

            rows = stmt.all()
        except SQLAlchemyError as e:
            raise self._rollback(e)

        return [DocumentSnapshot(row.id, row.to_document()) for row in rows]

    @staticmethod
    def _after(model, query, anchor):
        """Rows strictly after ``anchor`` in the query's ordering."""
        if not query.order_by:
            return model.id > anchor.id
        column = model.column_for(query.order_by)
        value = getattr(anchor, query.order_by)
        if query.descending:
            return or_(column < value, and_(column == value, model.id < anchor.id))
        return or_(column > value, and_(column == value, model.id > anchor.id))

    def get(self, collection, doc_id):
        model = self._model(collection)
        try:
            row = self.session.get(model, doc_id)
        except SQLAlchemyError as e:
            raise self._rollback(e)
        if row is None:
            return None
        return DocumentSnapshot(row.id, row.to_document())

    def insert(self, collection, data):
        model = self._model(collection)
        row = model(id=uuid4().hex)
        row.apply_fields({k: v for k, v in data.items() if k not in SERVER_FIELDS})
        try:
            self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._rollback(e)

        logger.info(f'Inserted {collection}/{row.id}')
        return DocumentSnapshot(row.id, row.to_document())

    def update(self, collection, doc_id, fields):
        model = self._model(collection)
        try:
            row = self.session.get(model, doc_id)
            if row is None:
                return None
            row.apply_fields({k: v for k, v in fields.items() if k not in SERVER_FIELDS})
            row.touch()
            self.session.commit()
        except SQLAlchemyError as e:
            raise self._rollback(e)

        logger.info(f'Updated {collection}/{doc_id}: {sorted(fields)}')
        return DocumentSnapshot(row.id, row.to_document())
