"""
会員・チームのデータアクセス層パッケージ

このパッケージには以下のモジュールが含まれています:
- db_models: Member / Team のエンティティ定義
- query: クエリ指定、ページング、名前付きクエリ、クエリ実行器
- repositories: 汎用リポジトリと Member / Team 用の具象リポジトリ
- service: Unit of Work と会員サービス
"""

__version__ = "1.0.0"
__author__ = "Data Access Study Project"

from .errors import (
    RepositoryError,
    NotFound,
    InvalidQuery,
    ConstraintViolation,
    StoreUnavailable,
    NonUniqueResult,
)
from .db_models import Base, Member, Team
from .dto import MemberDto, UsernameOnly
from .query.paging import Direction, Order, Sort, PageRequest, Page, Slice
from .query.spec import Comparator, QuerySpec

__all__ = [
    # errors
    "RepositoryError",
    "NotFound",
    "InvalidQuery",
    "ConstraintViolation",
    "StoreUnavailable",
    "NonUniqueResult",
    # db_models / dto
    "Base",
    "Member",
    "Team",
    "MemberDto",
    "UsernameOnly",
    # query
    "Direction",
    "Order",
    "Sort",
    "PageRequest",
    "Page",
    "Slice",
    "Comparator",
    "QuerySpec",
]
