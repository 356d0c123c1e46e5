"""
サンプルの会員データを登録するスクリプト

スキーマを作成し、`user0`〜`user{count-1}`（年齢0〜count-1）の会員を登録する。
件数を省略した場合は config.toml の [seed] member_count を使う。
接続先は実行ディレクトリの .env（DATABASE_URL, DB_HOST など）が設定ファイルより優先される。

$ python scripts/seed_members.py 100
"""

import sys
import logging

from dotenv import find_dotenv, load_dotenv

from data_access.config_loader import ConfigLoader
from data_access.db_controller import (
    check_connection,
    create_session_factory,
    get_db_engine,
    init_schema,
)
from data_access.errors import RepositoryError
from data_access.service.member_service import MemberService
from data_access.service.unitofwork import SqlAlchemyUnitOfWork

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main(argv: list[str]) -> int:
    # 1. .envとconfigを読み込む
    load_dotenv(find_dotenv(usecwd=True))
    config_loader = ConfigLoader()
    seed_config = config_loader.section("seed")
    if len(argv) > 1:
        try:
            count = int(argv[1])
        except ValueError:
            print("登録件数は整数で指定してください。: python scripts/seed_members.py 100")
            return 1
    else:
        count = int(seed_config.get("member_count", 100))
    prefix = seed_config.get("username_prefix", "user")

    # 2. db接続準備 uowとmember_serviceのインスタンス立ち上げ
    try:
        engine = get_db_engine(config_loader.database_url, config_loader.database_echo)
        check_connection(engine)
        init_schema(engine)
    except RepositoryError as e:
        logger.error("DBの準備に失敗しました: %s", e.message)
        return 1

    uow = SqlAlchemyUnitOfWork(create_session_factory(engine))
    service = MemberService(
        uow,
        default_page_size=config_loader.default_page_size,
        max_page_size=config_loader.max_page_size,
    )

    # 3. 会員を登録する
    service.register_members(count, prefix)
    first_page = service.list_members(page=0, size=5)
    logger.info(
        "登録済み会員数: %d, 先頭ページ: %s",
        first_page.total_elements,
        [dto.username for dto in first_page.content],
    )
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
