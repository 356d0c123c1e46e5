"""
構造化されたクエリ指定（QuerySpec）を組み立てるためのモジュール。

メソッド名の命名規約からクエリを導出する代わりに、
(フィールド, 比較演算子, 値) の述語リスト・ソート・取得範囲・先行ロード指定を
データとして保持する。述語はすべてANDで結合される。

存在しないフィールド名はここで（組み立て時に）InvalidQueryとする。

Example:
    ```python
    spec = (
        QuerySpec(Member)
        .where("username", Comparator.EQ, "member1")
        .where("age", Comparator.GT, 15)
    )
    members = executor.entities(resolve_select(spec))
    ```

比較演算子を増やす場合は、Comparatorに列挙子を追加し、
_OPERATORSにカラムへの演算を登録する（例: LT -> operator.lt）。
"""

import operator
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

from sqlalchemy import inspect

from data_access.errors import InvalidQuery
from data_access.query.paging import PageRequest, Sort

T = TypeVar("T")


class Comparator(Enum):
    EQ = "eq"
    GT = "gt"
    GTE = "gte"


_OPERATORS: dict[Comparator, Callable[[Any, Any], Any]] = {
    Comparator.EQ: operator.eq,
    Comparator.GT: operator.gt,
    Comparator.GTE: operator.ge,
}


@dataclass(frozen=True)
class Predicate:
    field: str
    comparator: Comparator
    value: Any

    def to_criterion(self, model: type) -> Any:
        return _OPERATORS[self.comparator](getattr(model, self.field), self.value)


def column_names(model: type) -> set[str]:
    """モデルのカラム属性名（Python側の属性名）を返す"""
    return set(inspect(model).column_attrs.keys())


def relation_names(model: type) -> set[str]:
    return set(inspect(model).relationships.keys())


def _check_field(model: type, name: str) -> None:
    if name not in column_names(model):
        raise InvalidQuery(
            f"{model.__name__}に存在しないフィールドです: {name}",
            {"model": model.__name__, "field": name},
        )


def _to_comparator(comparator: Comparator | str) -> Comparator:
    if isinstance(comparator, Comparator):
        return comparator
    try:
        return Comparator(comparator)
    except ValueError as e:
        raise InvalidQuery(
            f"サポートされていない比較演算子です: {comparator}",
            {"comparator": comparator},
        ) from e


@dataclass(frozen=True)
class QuerySpec(Generic[T]):
    model: type[T]
    predicates: tuple[Predicate, ...] = ()
    sort: Sort = field(default_factory=Sort.unsorted)
    offset: int = 0
    limit: int | None = None
    fetch_paths: tuple[str, ...] = ()

    def where(self, name: str, comparator: Comparator | str, value: Any) -> "QuerySpec[T]":
        _check_field(self.model, name)
        predicate = Predicate(name, _to_comparator(comparator), value)
        return replace(self, predicates=self.predicates + (predicate,))

    def order_by(self, sort: Sort) -> "QuerySpec[T]":
        for order in sort:
            _check_field(self.model, order.field)
        return replace(self, sort=self.sort.and_(sort))

    def window(self, offset: int, limit: int) -> "QuerySpec[T]":
        if offset < 0:
            raise InvalidQuery("offsetは0以上である必要があります", {"offset": offset})
        if limit <= 0:
            raise InvalidQuery("limitは1以上である必要があります", {"limit": limit})
        return replace(self, offset=offset, limit=limit)

    def page(self, page_request: PageRequest) -> "QuerySpec[T]":
        return self.order_by(page_request.sort).window(
            page_request.offset, page_request.size
        )

    def fetch(self, *paths: str) -> "QuerySpec[T]":
        """先行ロードする関連を指定する（エンティティグラフ相当）"""
        relations = relation_names(self.model)
        for path in paths:
            if path not in relations:
                raise InvalidQuery(
                    f"{self.model.__name__}に存在しない関連です: {path}",
                    {"model": self.model.__name__, "relation": path},
                )
        return replace(self, fetch_paths=self.fetch_paths + tuple(paths))

    def unpaged(self) -> "QuerySpec[T]":
        return replace(self, offset=0, limit=None)

    @property
    def is_windowed(self) -> bool:
        return self.limit is not None or self.offset > 0
