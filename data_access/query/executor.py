"""
ステートメントをセッション経由で実行し、結果をエンティティ・プロジェクション・
スカラー値・Page/Sliceに割り当てるモジュール。

読み取りはflushを行わず、追跡中の他のエンティティの状態を変更しない。
先行ロード（joinedload / contains_eager）はステートメント単位の指定であり、
実行器やセッションの設定としては持たない。

更新系（modify）は、実行前にflushして保留中の変更をストアに反映し、
実行後は成否にかかわらずセッション内のキャッシュを無効化する。
"""

import logging
from typing import Any, Mapping, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.sql.base import Executable

from data_access.errors import translate_store_errors
from data_access.query.named_query import NamedQuery
from data_access.query.paging import Page, PageRequest, Slice
from data_access.query.resolver import resolve_count, resolve_select
from data_access.query.spec import QuerySpec

logger = logging.getLogger(__name__)

P = TypeVar("P")


class QueryExecutor:
    def __init__(self, session: Session):
        self.session = session

    def entities(self, statement: Executable, params: Mapping[str, Any] | None = None) -> list:
        with translate_store_errors("entities"):
            result = self.session.scalars(statement, params or {})
            return list(result.unique().all())

    def one_or_none(self, statement: Executable, params: Mapping[str, Any] | None = None) -> Any:
        """単一のエンティティを返す。複数件ならNonUniqueResult"""
        with translate_store_errors("one_or_none"):
            return self.session.scalars(statement, params or {}).unique().one_or_none()

    def scalars(self, statement: Executable, params: Mapping[str, Any] | None = None) -> list:
        with translate_store_errors("scalars"):
            return list(self.session.scalars(statement, params or {}).all())

    def projections(
        self,
        statement: Executable,
        projection: type[P],
        params: Mapping[str, Any] | None = None,
    ) -> list[P]:
        """結果行を列ラベル名でdataclassに割り当てる"""
        with translate_store_errors("projections"):
            rows = self.session.execute(statement, params or {}).all()
        return [projection(**row._mapping) for row in rows]

    def count(self, statement: Executable, params: Mapping[str, Any] | None = None) -> int:
        with translate_store_errors("count"):
            return int(self.session.scalar(statement, params or {}) or 0)

    def page(self, spec: QuerySpec, page_request: PageRequest) -> Page:
        """内容と、同じ述語での総件数を取得してPageを返す"""
        content = self.entities(resolve_select(spec.page(page_request)))
        total = self.count(resolve_count(spec))
        logger.debug(
            "[PAGE] model=%s, page=%d, size=%d, total=%d",
            spec.model.__name__,
            page_request.page,
            page_request.size,
            total,
        )
        return Page(content, page_request.page, page_request.size, total)

    def slice(self, spec: QuerySpec, page_request: PageRequest) -> Slice:
        """size + 1件を取得し、余分な1件の有無で次ページの有無を判定する"""
        rows = self.entities(resolve_select(spec.page(page_request), extra_rows=1))
        has_next = len(rows) > page_request.size
        return Slice(rows[: page_request.size], page_request.page, page_request.size, has_next)

    def modify(self, statement: Executable, params: Mapping[str, Any] | None = None) -> int:
        """集合ベースの更新を実行し、影響行数を返す。

        ストアを直接更新するため、セッション内のオブジェクトは古くなる。
        次の読み取りより前に必ずinvalidate()される。
        """
        with translate_store_errors("modify"):
            self.session.flush()
            try:
                result = self.session.execute(statement, params or {})
                affected = result.rowcount
            finally:
                self.invalidate()
        logger.info("[BULK UPDATE] affected=%d", affected)
        return affected

    def invalidate(self) -> None:
        """セッション内のすべてのインスタンスを失効させ、次のアクセスで再読み込みさせる"""
        self.session.expire_all()

    def run_named(self, query: NamedQuery, *args: Any, **kwargs: Any) -> Any:
        params = query.bind(*args, **kwargs)
        logger.debug("[NAMED QUERY] name=%s, params=%s", query.name, params)
        if query.modifying:
            return self.modify(query.statement, params)
        if query.projection is not None:
            return self.projections(query.statement, query.projection, params)
        if query.scalar:
            return self.scalars(query.statement, params)
        return self.entities(query.statement, params)
