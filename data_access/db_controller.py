"""
DBコントローラー用モジュール

エンジンとセッションファクトリの作成、スキーマの作成、接続確認を行う。
接続情報は外部（環境変数・.env・config.toml）から与えられる。
"""

import logging

from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from data_access.config_loader import ConfigLoader
from data_access.db_models import Base
from data_access.errors import StoreUnavailable, translate_store_errors

# 標準ロガーの取得
logger = logging.getLogger(__name__)


def get_db_engine(url: str | None = None, echo: bool | None = None) -> Engine:
    """
    DBエンジンを作成する関数

    Args:
        url: 接続URL。省略時は.envと設定ファイルから決定する
        echo: 発行SQLをログ出力するか。省略時は設定ファイルの値

    Returns:
        sqlalchemy.engine.Engine: 作成したDBエンジン

    Raises:
        StoreUnavailable: URLが不正、またはドライバが見つからない場合
    """
    if url is None or echo is None:
        load_dotenv()
        config = ConfigLoader()
        url = url or config.database_url
        echo = config.database_echo if echo is None else echo

    kwargs = {}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # インメモリDBはコネクションごとに別DBになるため、単一コネクションを共有する
        kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}

    try:
        engine = create_engine(url, echo=echo, **kwargs)
    except (ArgumentError, ImportError) as e:
        logger.error("DBエンジン作成失敗: %s", e)
        raise StoreUnavailable(f"DBエンジンを作成できません: {e}") from e
    logger.info("DBエンジン作成成功: %s", engine.url.render_as_string(hide_password=True))
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """
    DBセッションのファクトリを作成する関数

    Returns:
        sessionmaker：Unit of Workごとにセッションを作成するファクトリ
    """
    return sessionmaker(
        autoflush=False,  # 読み取り時に暗黙のflushをしない。flushはsave等で明示的に行う
        bind=engine,
    )


def init_schema(engine: Engine) -> None:
    """モデル定義からテーブルを作成する（既存のテーブルはそのまま）"""
    with translate_store_errors("init_schema"):
        Base.metadata.create_all(engine)
    logger.info("スキーマを作成しました: %s", ", ".join(Base.metadata.tables))


def check_connection(engine: Engine) -> None:
    """ストアに接続できることを確認する。

    Raises:
        StoreUnavailable: 接続できない場合
    """
    with translate_store_errors("check_connection"):
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    logger.debug("DB接続確認成功")
