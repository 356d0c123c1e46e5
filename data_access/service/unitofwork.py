"""Unit of Work パターンを実装するためのモジュール。

このモジュールは、データアクセスとトランザクション管理の責務をカプセル化
するための、抽象的な `UnitOfWork` インターフェースと、SQLAlchemyを
利用した具象クラス `SqlAlchemyUnitOfWork` を提供します。

Unit of Workごとに新しいセッションを開き、境界（withブロックの終わり）で閉じます。
セッションはそのUnit of Work専用のキャッシュ（ID -> エンティティ）であり、
他の呼び出し元と共有してはいけません。

Service層は、このモジュールが提供するUnit of Workを通じて、
データベースとの対話を安全かつ一貫性のある形で行います。
"""
import logging
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Optional, Type

from sqlalchemy.orm import sessionmaker

from data_access.errors import translate_store_errors
from data_access.repositories.member_repository import MemberRepository
from data_access.repositories.team_repository import TeamRepository

logger = logging.getLogger(__name__)


class UnitOfWork(ABC):
    """Unit of Workパターンを実装するための抽象基底クラス/インターフェイス

    トランザクションの境界を定義し、管理化のリポジトリへのアクセスを提供します。
    このクラスはコンテキストマネージャーとして、`with`ステートメントで使用されることを想定しています。

    Args:
        session_factory (sessionmaker): SQLAlchemyのsessionmakerインスタンス
    Attributes:
        members(MemberRepository): Memberモデルを扱うリポジトリ
        teams(TeamRepository): Teamモデルを扱うリポジトリ

    Example:
        with ConcreteUnitOfWork(session_factory) as uow:
            member = uow.members.find_by_id(1)
            # uow.commit()はwithブロックを抜ける際に自動実行される
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self.committed = False
        self.rollbacked = False

    @abstractmethod
    def __enter__(self):
        pass

    @abstractmethod
    def __exit__(
        self,
        execution_type: Optional[Type[BaseException]],
        execution_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ):
        pass

    @property
    @abstractmethod
    def members(self) -> MemberRepository:
        pass

    @property
    @abstractmethod
    def teams(self) -> TeamRepository:
        pass

    @abstractmethod
    def flush(self) -> None:
        pass

    @abstractmethod
    def invalidate(self) -> None:
        """キャッシュ済みのエンティティを失効させ、次の読み取りでストアから再取得させる"""
        pass

    @abstractmethod
    def clear(self) -> None:
        """キャッシュ済みのエンティティをすべて切り離す"""
        pass


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemyを用いたUnit of Workの具体的実装"""

    def __init__(self, session_factory: sessionmaker):
        super().__init__(session_factory)

    def __enter__(self) -> "SqlAlchemyUnitOfWork":
        """セッションを開始し、そのセッションを使ってリポジトリ群を初期化・準備すること"""
        self.session = self.session_factory()
        self.committed = False
        self.rollbacked = False
        self._members = MemberRepository(self.session)
        self._teams = TeamRepository(self.session)
        return self

    @property
    def members(self) -> MemberRepository:
        return self._members

    @property
    def teams(self) -> TeamRepository:
        return self._teams

    def flush(self) -> None:
        with translate_store_errors("UnitOfWork.flush"):
            self.session.flush()

    def invalidate(self) -> None:
        self.session.expire_all()

    def clear(self) -> None:
        self.session.expunge_all()

    def __exit__(
        self,
        execution_type: Optional[Type[BaseException]],
        execution_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ):
        """トランザクションのコミットまたはロールバックを行い、セッションを閉じること"""

        try:
            if execution_type is None:
                try:
                    with translate_store_errors("UnitOfWork.commit"):
                        self.session.commit()
                    self.committed = True
                except Exception as e:
                    logger.error(
                        "Commit failed:%s, Rolling back: %s, Trace back:%s",
                        e,
                        execution_value,
                        traceback,
                    )
                    self.session.rollback()
                    self.rollbacked = True
                    raise
            else:
                self.session.rollback()
                self.rollbacked = True
        finally:
            self.session.close()
