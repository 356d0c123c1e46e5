import os
import toml
import logging

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./data_access.db"
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 2000


class ConfigLoader:
    def __init__(self, path: str = None):
        self.config = self._load_config(path)

    def _load_config(self, path: str = None):
        """
        設定ファイル（config.toml）を読み込む。

        テスト時など、特定のパスから読み込みたい場合はpath引数を指定する。
        指定しない場合は、このファイルの位置を基準にプロジェクトルートを特定し、
        `config/config.toml` を読み込む。

        Args:
            path (str, optional): 読み込む設定ファイルの絶対パス. Defaults to None.

        Returns:
            dict: 設定ファイルの内容。読み込みに失敗した場合は空の辞書。
        """

        paths_to_check = []
        if path:
            # テスト時など、特定のパスが指定された場合
            paths_to_check.append(path)
        else:
            # 通常実行時：このファイルの場所を基準にパスを解決
            current_file_path = os.path.abspath(__file__)
            package_dir = os.path.dirname(current_file_path)
            project_root = os.path.dirname(package_dir)
            paths_to_check.append(os.path.join(project_root, "config", "config.toml"))
            paths_to_check.append("./config/config.toml")

        for config_path in paths_to_check:
            if os.path.exists(config_path):
                try:
                    config_data = toml.load(config_path)
                    logger.info("設定ファイルを読み込みました: %s", config_path)
                    return config_data
                except (toml.TomlDecodeError, OSError) as e:
                    logger.error(
                        "設定ファイルの読み込みに失敗しました: %s, エラー: %s",
                        config_path,
                        e,
                    )
                    continue  # 次の候補パスへ

        logger.warning("有効な設定ファイルが見つかりませんでした。デフォルト設定を使用します。")
        return {}

    def section(self, name: str) -> dict:
        return self.config.get(name, {})

    @property
    def database_url(self) -> str:
        """接続URLを決定する。

        優先順位: 環境変数DATABASE_URL > DB_HOST等の環境変数 > 設定ファイル > デフォルト
        """
        url = os.environ.get("DATABASE_URL")
        if url:
            return url
        if os.environ.get("DB_HOST"):
            db_user = os.getenv("DB_USER", "user")
            db_password = os.getenv("DB_PASSWORD", "password")
            db_host = os.getenv("DB_HOST").strip()
            db_port = os.getenv("DB_PORT", "5432")
            db_name = os.getenv("DB_NAME", "data_access")
            return f"postgresql+psycopg2://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
        return self.section("database").get("url", DEFAULT_DATABASE_URL)

    @property
    def database_echo(self) -> bool:
        return bool(self.section("database").get("echo", False))

    @property
    def default_page_size(self) -> int:
        return int(self.section("paging").get("default_page_size", DEFAULT_PAGE_SIZE))

    @property
    def max_page_size(self) -> int:
        return int(self.section("paging").get("max_page_size", MAX_PAGE_SIZE))
