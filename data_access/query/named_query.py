"""
名前付きクエリ（固定のステートメント + 宣言済みパラメータ）。

ステートメントは`select()`と`bindparam()`、または`text()`で書く。
`text()`の結果をエンティティに割り当てる場合は
`select(Member).from_statement(text(...))`とする。

宣言したパラメータ名とステートメント中の必須バインドパラメータが
一致しない場合は、登録時（モジュールの読み込み時）にInvalidQueryとなる。
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.sql.base import Executable

from data_access.errors import InvalidQuery

logger = logging.getLogger(__name__)


def required_parameters(statement: Executable) -> set[str]:
    """ステートメント中の、値が未設定のバインドパラメータ名を返す"""
    compiled = statement.compile()
    return {name for name, bind in compiled.binds.items() if bind.required}


@dataclass(frozen=True)
class NamedQuery:
    """固定のクエリと、その結果の受け取り方

    Attributes:
        name: クエリ名（例: "Member.findByUsername"）
        statement: 実行するステートメント
        params: パラメータ名。位置引数はこの順にバインドされる
        projection: 結果行を割り当てるdataclass。Noneならエンティティとして受け取る
        scalar: Trueなら先頭列の値のリストとして受け取る
        modifying: Trueなら更新系。影響行数を返し、実行後にキャッシュを無効化する
    """

    name: str
    statement: Executable
    params: tuple[str, ...] = ()
    projection: type | None = None
    scalar: bool = False
    modifying: bool = False

    def __post_init__(self):
        if len(set(self.params)) != len(self.params):
            raise InvalidQuery(f"{self.name}: パラメータ名が重複しています", {"params": self.params})
        declared = set(self.params)
        actual = required_parameters(self.statement)
        if declared != actual:
            raise InvalidQuery(
                f"{self.name}: 宣言されたパラメータとクエリのパラメータが一致しません",
                {
                    "missing_in_declaration": sorted(actual - declared),
                    "unused_in_query": sorted(declared - actual),
                },
            )

    def bind(self, *args: Any, **kwargs: Any) -> dict[str, Any]:
        """位置引数・キーワード引数をパラメータ名に割り当てる。

        Raises:
            InvalidQuery: 引数の過不足、未宣言の名前、同じパラメータへの二重指定
        """
        if len(args) > len(self.params):
            raise InvalidQuery(
                f"{self.name}: 引数が多すぎます",
                {"expected": len(self.params), "given": len(args)},
            )
        bound = dict(zip(self.params, args))
        for key, value in kwargs.items():
            if key not in self.params:
                raise InvalidQuery(f"{self.name}: 未宣言のパラメータです: {key}")
            if key in bound:
                raise InvalidQuery(f"{self.name}: パラメータが二重に指定されています: {key}")
            bound[key] = value
        missing = [p for p in self.params if p not in bound]
        if missing:
            raise InvalidQuery(
                f"{self.name}: パラメータが不足しています: {', '.join(missing)}",
                {"missing": missing},
            )
        return bound


class NamedQueryRegistry:
    """名前付きクエリを名前で引けるようにする"""

    def __init__(self):
        self._queries: dict[str, NamedQuery] = {}

    def register(self, query: NamedQuery) -> NamedQuery:
        if query.name in self._queries:
            raise InvalidQuery(f"名前付きクエリが重複しています: {query.name}")
        self._queries[query.name] = query
        logger.debug("名前付きクエリを登録しました: %s", query.name)
        return query

    def get(self, name: str) -> NamedQuery:
        try:
            return self._queries[name]
        except KeyError:
            raise InvalidQuery(f"名前付きクエリが見つかりません: {name}") from None

    def __contains__(self, name: str) -> bool:
        return name in self._queries

    def names(self) -> list[str]:
        return sorted(self._queries)


named_queries = NamedQueryRegistry()
