"""
Query specification: the declarative options of a repository read, composed
into a statement by a fixed pipeline.

Stages run in this order: filter -> eager load -> order -> tracking -> filter
bypass. Tracking and the filter bypass are execution options on the statement,
honoured by session event hooks wherever the statement is executed.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Sequence, Type, TypeVar, Union
from sqlalchemy.orm import QueryableAttribute
from sqlalchemy.sql import ClauseElement
from sqlalchemy.sql.base import ExecutableOption
from sqlmodel import select

from dataaccess.exceptions import InvalidPropertyExpression
from .filters import IGNORE_QUERY_FILTERS
from .tracking import DISABLE_TRACKING

T = TypeVar("T")

Predicate = Union[ClauseElement, Callable[[Type[Any]], ClauseElement]]
Include = Union[ExecutableOption, Sequence[ExecutableOption], Callable[[Any], Any]]
OrderBy = Union[Any, Sequence[Any], Callable[[Any], Any]]


def _is_expression(value: Any) -> bool:
    return isinstance(value, ClauseElement) or hasattr(value, "__clause_element__")


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


@dataclass
class QuerySpec(Generic[T]):
    """
    Optional read directives for one query.

    predicate: SQL expression, or a callable receiving the model class and returning one.
    include: loader option(s) such as ``selectinload(Order.lines)``, or a callable
        taking the statement and returning the modified statement.
    order_by: column expression(s), or a callable taking the statement and
        returning the ordered statement.
    """

    predicate: Optional[Predicate] = None
    include: Optional[Include] = None
    order_by: Optional[OrderBy] = None
    disable_tracking: bool = False
    ignore_query_filters: bool = False

    def compose(self, model: Type[T], statement=None, eager_load: bool = True):
        """Build the statement for this spec, starting from ``select(model)`` by default."""
        if statement is None:
            statement = select(model)

        statement = self.apply_filter(model, statement)
        if eager_load:
            statement = self.apply_eager_load(statement)
        statement = self.apply_order(statement)
        statement = self.apply_tracking(statement)
        return self.apply_filter_bypass(statement)

    def apply_filter(self, model: Type[T], statement):
        if self.predicate is None:
            return statement
        predicate = self.predicate
        if callable(predicate) and not _is_expression(predicate):
            predicate = predicate(model)
        return statement.where(predicate)

    def apply_eager_load(self, statement):
        if self.include is None:
            return statement
        if callable(self.include) and not isinstance(self.include, ExecutableOption):
            return self.include(statement)
        return statement.options(*_as_list(self.include))

    def apply_order(self, statement):
        if self.order_by is None:
            return statement
        if callable(self.order_by) and not _is_expression(self.order_by):
            return self.order_by(statement)
        return statement.order_by(*_as_list(self.order_by))

    def apply_tracking(self, statement):
        if not self.disable_tracking:
            return statement
        return statement.execution_options(**{DISABLE_TRACKING: True})

    def apply_filter_bypass(self, statement):
        if not self.ignore_query_filters:
            return statement
        return statement.execution_options(**{IGNORE_QUERY_FILTERS: True})


class _MemberAccess:
    """Result of one attribute access on a recording proxy."""

    def __init__(self, name: str):
        self._dataaccess_name = name
        self._dataaccess_used = False

    def __getattr__(self, name: str):
        # Any further access (nested member, method lookup) disqualifies it
        self._dataaccess_used = True
        return _Opaque()


class _Opaque:
    pass


class _MemberRecorder:
    def __init__(self):
        self._dataaccess_accesses = []

    def __getattr__(self, name: str):
        access = _MemberAccess(name)
        self._dataaccess_accesses.append(access)
        return access


def get_property_name(expression: Any, model: Optional[type] = None, param_name: str = "property_expression") -> str:
    """
    Name of the attribute a direct member-access expression refers to.

    Accepts a mapped class attribute (``Product.name``) or a single-attribute
    lambda (``lambda p: p.name``). Constants, method calls, nested attributes
    and SQL functions raise InvalidPropertyExpression.
    """
    if isinstance(expression, QueryableAttribute):
        if model is not None and not issubclass(model, expression.class_):
            raise InvalidPropertyExpression(
                param_name,
                expression,
                f"Attribute {expression} does not belong to {model.__name__} (parameter '{param_name}')",
            )
        return expression.key

    if _is_expression(expression) or not callable(expression) or isinstance(expression, type):
        raise InvalidPropertyExpression(param_name, expression)

    recorder = _MemberRecorder()
    try:
        result = expression(recorder)
    except Exception as exc:
        raise InvalidPropertyExpression(param_name, expression) from exc

    accesses = recorder._dataaccess_accesses
    if len(accesses) == 1 and result is accesses[0] and not result._dataaccess_used:
        return result._dataaccess_name
    raise InvalidPropertyExpression(param_name, expression)
