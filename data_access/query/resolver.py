"""QuerySpecをSQLAlchemyのステートメントに変換する。"""

from typing import Any

from sqlalchemy import Select, func, select, update
from sqlalchemy.sql.expression import Update
from sqlalchemy.orm import joinedload

from data_access.errors import InvalidQuery
from data_access.query.spec import QuerySpec, column_names


def _criteria(spec: QuerySpec) -> list[Any]:
    return [p.to_criterion(spec.model) for p in spec.predicates]


def resolve_select(spec: QuerySpec, extra_rows: int = 0) -> Select:
    """内容取得用のSELECTを組み立てる。

    Args:
        spec: クエリ指定
        extra_rows: limitに加算する件数。Sliceで次ページ有無を判定するために使う

    Returns:
        Select: 述語・ソート・先行ロード・取得範囲を反映したステートメント
    """
    model = spec.model
    statement = select(model).where(*_criteria(spec))
    for path in spec.fetch_paths:
        statement = statement.options(joinedload(getattr(model, path)))
    for order in spec.sort:
        column = getattr(model, order.field)
        statement = statement.order_by(column.asc() if order.is_ascending else column.desc())
    if spec.offset:
        statement = statement.offset(spec.offset)
    if spec.limit is not None:
        statement = statement.limit(spec.limit + extra_rows)
    return statement


def resolve_count(spec: QuerySpec) -> Select:
    """内容取得と同じ述語で件数を数えるSELECTを組み立てる（ソート・範囲は無視）"""
    return select(func.count()).select_from(spec.model).where(*_criteria(spec))


def resolve_update(spec: QuerySpec, values: dict[str, Any]) -> Update:
    """集合ベースのUPDATEを組み立てる。

    セッション内のオブジェクトとの同期は行わない（synchronize_session=False）。
    呼び出し側で実行後にキャッシュを無効化すること。
    """
    if spec.sort.is_sorted or spec.is_windowed:
        raise InvalidQuery("一括更新にソートや取得範囲は指定できません")
    if not values:
        raise InvalidQuery("一括更新の更新内容が空です")
    columns = column_names(spec.model)
    unknown = sorted(set(values) - columns)
    if unknown:
        raise InvalidQuery(
            f"{spec.model.__name__}に存在しないフィールドです: {', '.join(unknown)}",
            {"model": spec.model.__name__, "fields": unknown},
        )
    return (
        update(spec.model)
        .where(*_criteria(spec))
        .values({getattr(spec.model, name): value for name, value in values.items()})
        .execution_options(synchronize_session=False)
    )
