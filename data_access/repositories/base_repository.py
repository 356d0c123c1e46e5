"""
ジェネリックなリポジトリパターンのための基底クラス。

このクラスは、特定のSQLAlchemyモデルに対する基本的なCRUD、ページング、
一括更新の操作をカプセル化します。具象リポジトリクラスは、
このクラスを継承し、扱うモデルの型と主キーの型を指定することで、
定型的なデータアクセスロジックを再利用できます。

トランザクション管理（commit, rollback）は、このクラスの責務外であり、
呼び出し元のUnit of Workで行う必要があります。

セッションは、そのUnit of Workが所有するキャッシュ（ID -> エンティティ）を兼ねます。
bulk_updateはこのキャッシュを経由せずにストアを直接更新するため、
実行後に必ずキャッシュを無効化します。

Type Parameters:
    T: このリポジトリが扱うSQLAlchemyモデルの型。
    K: 主キーの型。

Attributes:
    session (Session): データベース操作に使用するSQLAlchemyのセッション。
    model (Type[T]): このリポジトリが操作対象とするモデルクラス。
    executor (QueryExecutor): セッションに紐づくクエリ実行器。

Example:
    `Team`モデルを扱う具象リポジトリの実装例です。

    ```python
    from sqlalchemy.orm import Session
    from .base_repository import BaseRepository
    from ..db_models import Team

    class TeamRepository(BaseRepository[Team, int]):
        def __init__(self, session: Session):
            super().__init__(session, Team)

        def find_by_name(self, name: str) -> Team | None:
            # ドメイン固有のメソッドをここに追加
    ```
"""

import logging
from typing import Any, Generic, Type, TypeVar

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from data_access.errors import NotFound, translate_store_errors
from data_access.query.executor import QueryExecutor
from data_access.query.paging import Page, PageRequest, Slice
from data_access.query.resolver import resolve_count, resolve_select, resolve_update
from data_access.query.spec import QuerySpec

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K")


class BaseRepository(Generic[T, K]):
    def __init__(self, session: Session, model: Type[T]):
        self.session = session
        self.model = model
        self.executor = QueryExecutor(session)

    def spec(self) -> QuerySpec[T]:
        """このリポジトリのモデルに対する空のクエリ指定を返す"""
        return QuerySpec(self.model)

    def _identity_of(self, entity: T) -> Any:
        """主キーの値を返す。未採番ならNone"""
        values = inspect(self.model).primary_key_from_instance(entity)
        if all(v is None for v in values):
            return None
        return values[0] if len(values) == 1 else tuple(values)

    def save(self, entity: T) -> T:
        """IDが未採番なら登録、採番済みなら更新し、flushしてIDが設定された実体を返す。

        セッション外で作られたIDありのエンティティはmergeされ、
        戻り値はセッション内の実体になる。
        """
        state = inspect(entity)
        with translate_store_errors(f"{self.model.__name__}.save"):
            if state.transient and self._identity_of(entity) is None:
                self.session.add(entity)
            elif state.transient or state.detached:
                entity = self.session.merge(entity)
            self.session.flush()
        logger.debug(
            "[SAVE] table=%s, id=%s", self.model.__tablename__, self._identity_of(entity)
        )
        return entity

    def find_by_id(self, id: K) -> T | None:
        with translate_store_errors(f"{self.model.__name__}.find_by_id"):
            return self.session.get(self.model, id)

    def get_by_id(self, id: K) -> T:
        entity = self.find_by_id(id)
        if entity is None:
            raise NotFound(
                f"{self.model.__name__}が見つかりません: id={id}",
                {"model": self.model.__name__, "id": id},
            )
        return entity

    def exists_by_id(self, id: K) -> bool:
        return self.find_by_id(id) is not None

    def find_all(self, spec: QuerySpec[T] | None = None) -> list[T]:
        return self.executor.entities(resolve_select(spec or self.spec()))

    def find_page(self, spec: QuerySpec[T] | None, page_request: PageRequest) -> Page[T]:
        return self.executor.page(spec or self.spec(), page_request)

    def find_slice(self, spec: QuerySpec[T] | None, page_request: PageRequest) -> Slice[T]:
        return self.executor.slice(spec or self.spec(), page_request)

    def count(self, spec: QuerySpec[T] | None = None) -> int:
        return self.executor.count(resolve_count(spec or self.spec()))

    def delete(self, entity: T) -> None:
        """IDで削除する。ストアに存在しないIDならNotFound"""
        id = self._identity_of(entity)
        if id is None:
            raise NotFound(
                f"未登録の{self.model.__name__}は削除できません",
                {"model": self.model.__name__},
            )
        self.delete_by_id(id)

    def delete_by_id(self, id: K) -> None:
        existing = self.get_by_id(id)
        with translate_store_errors(f"{self.model.__name__}.delete"):
            self.session.delete(existing)
            self.session.flush()
        logger.debug("[DELETE] table=%s, id=%s", self.model.__tablename__, id)

    def bulk_update(self, spec: QuerySpec[T], values: dict[str, Any]) -> int:
        """条件に合う行をストア上で直接更新し、影響行数を返す。

        Args:
            spec: 更新対象の条件。ソートや取得範囲は指定できない
            values: フィールド名 -> 新しい値（`Member.age + 1`のような式も可）

        Returns:
            int: 影響行数。0件もエラーではない
        """
        return self.executor.modify(resolve_update(spec, values))
