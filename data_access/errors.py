"""
データアクセス層の例外クラスと、ストア例外の変換処理。

リポジトリやクエリ実行の呼び出し元は、SQLAlchemyの例外ではなく
このモジュールの例外だけを意識すればよいようにする。

- NotFound: IDで必須の取得をした時、または存在しないIDを削除しようとした時
- InvalidQuery: 存在しないフィールド名、不正な比較演算子、範囲外のページング指定など
- ConstraintViolation: ストアが書き込みを拒否した（一意制約違反など）
- StoreUnavailable: ストアに接続できない。リトライは呼び出し元の責務
- NonUniqueResult: 単一結果を期待したクエリが複数行を返した
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    MultipleResultsFound,
    OperationalError,
)

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    """データアクセス層の例外の基底クラス"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFound(RepositoryError):
    pass


class InvalidQuery(RepositoryError):
    pass


class ConstraintViolation(RepositoryError):
    pass


class StoreUnavailable(RepositoryError):
    pass


class NonUniqueResult(RepositoryError):
    pass


@contextmanager
def translate_store_errors(operation: str) -> Iterator[None]:
    """ブロック内で発生したSQLAlchemyの例外を、このモジュールの例外に変換する。

    Args:
        operation: ログと例外の詳細に残す操作名（例: "Member.save"）

    Raises:
        ConstraintViolation: IntegrityErrorが発生した場合
        StoreUnavailable: 接続系の例外が発生した場合
        NonUniqueResult: 単一結果のクエリが複数行を返した場合
    """
    try:
        yield
    except IntegrityError as e:
        logger.error("[%s] 制約違反: %s", operation, e.orig)
        raise ConstraintViolation(
            f"{operation}: ストアが書き込みを拒否しました", {"cause": str(e.orig)}
        ) from e
    except (OperationalError, InterfaceError) as e:
        logger.error("[%s] ストアに接続できません", operation, exc_info=True)
        raise StoreUnavailable(
            f"{operation}: ストアに接続できません", {"cause": str(e.orig)}
        ) from e
    except DBAPIError as e:
        if e.connection_invalidated:
            logger.error("[%s] 接続が切断されました", operation, exc_info=True)
            raise StoreUnavailable(
                f"{operation}: 接続が切断されました", {"cause": str(e.orig)}
            ) from e
        raise
    except MultipleResultsFound as e:
        raise NonUniqueResult(f"{operation}: 結果が複数件あります") from e
