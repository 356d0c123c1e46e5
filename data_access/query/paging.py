"""
ページング・ソートの指定と、その結果ウィンドウを表すモジュール。

- Sort / Order: ソート条件（フィールド名と昇順・降順）
- PageRequest: 0始まりのページ番号とページサイズ、ソート条件
- Page: 結果ウィンドウ + 総件数（件数取得クエリが別途必要）
- Slice: 結果ウィンドウ + 次ページの有無のみ（size + 1件取得して判定）

Example:
    ```python
    request = PageRequest.of(2, 3, Sort.by("username", direction=Direction.DESC))
    page = member_repository.find_by_age(10, request)
    page.total_pages, page.is_last
    ```
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generic, TypeVar

from data_access.errors import InvalidQuery

T = TypeVar("T")
R = TypeVar("R")


class Direction(Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Order:
    field: str
    direction: Direction = Direction.ASC

    @property
    def is_ascending(self) -> bool:
        return self.direction is Direction.ASC


@dataclass(frozen=True)
class Sort:
    orders: tuple[Order, ...] = ()

    @classmethod
    def by(cls, *fields: str, direction: Direction = Direction.ASC) -> "Sort":
        if not fields:
            raise InvalidQuery("ソート対象のフィールドが指定されていません")
        return cls(tuple(Order(f, direction) for f in fields))

    @classmethod
    def by_orders(cls, *orders: Order) -> "Sort":
        return cls(tuple(orders))

    @classmethod
    def unsorted(cls) -> "Sort":
        return cls()

    def and_(self, other: "Sort") -> "Sort":
        return Sort(self.orders + other.orders)

    @property
    def is_sorted(self) -> bool:
        return bool(self.orders)

    def __iter__(self):
        return iter(self.orders)


@dataclass(frozen=True)
class PageRequest:
    """0始まりのページ指定。不正な値は生成時にInvalidQueryとする。"""

    page: int
    size: int
    sort: Sort = field(default_factory=Sort.unsorted)

    def __post_init__(self):
        if self.page < 0:
            raise InvalidQuery(
                "ページ番号は0以上である必要があります", {"page": self.page}
            )
        if self.size <= 0:
            raise InvalidQuery(
                "ページサイズは1以上である必要があります", {"size": self.size}
            )

    @classmethod
    def of(cls, page: int, size: int, sort: Sort | None = None) -> "PageRequest":
        return cls(page, size, sort or Sort.unsorted())

    @property
    def offset(self) -> int:
        return self.page * self.size

    def next(self) -> "PageRequest":
        return PageRequest(self.page + 1, self.size, self.sort)

    def previous_or_first(self) -> "PageRequest":
        if self.page == 0:
            return self
        return PageRequest(self.page - 1, self.size, self.sort)


@dataclass(frozen=True)
class Slice(Generic[T]):
    content: list[T]
    number: int
    size: int
    has_next: bool

    @property
    def number_of_elements(self) -> int:
        return len(self.content)

    @property
    def is_first(self) -> bool:
        return self.number == 0

    @property
    def is_last(self) -> bool:
        return not self.has_next

    @property
    def has_previous(self) -> bool:
        return self.number > 0

    def map(self, converter: Callable[[T], R]) -> "Slice[R]":
        return Slice([converter(c) for c in self.content], self.number, self.size, self.has_next)


@dataclass(frozen=True)
class Page(Generic[T]):
    content: list[T]
    number: int
    size: int
    total_elements: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_elements / self.size)

    @property
    def has_next(self) -> bool:
        return self.number < self.total_pages - 1

    @property
    def is_last(self) -> bool:
        # 範囲内のページでは number == total_pages - 1 と同値。
        # 0件や範囲外のページも最終ページ扱いにする
        return not self.has_next

    @property
    def is_first(self) -> bool:
        return self.number == 0

    @property
    def has_previous(self) -> bool:
        return self.number > 0

    @property
    def number_of_elements(self) -> int:
        return len(self.content)

    def map(self, converter: Callable[[T], R]) -> "Page[R]":
        """contentの各要素を変換したPageを返す（件数情報はそのまま）"""
        return Page(
            [converter(c) for c in self.content],
            self.number,
            self.size,
            self.total_elements,
        )
